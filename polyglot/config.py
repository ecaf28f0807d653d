from typing import Any, List
import json

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _strip_wrapping_quotes(value: str) -> str:
    text = value.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in {'"', "'"}:
        return text[1:-1].strip()
    return text


def _unwrap_singleton_brackets(value: str) -> str:
    text = _strip_wrapping_quotes(value)
    if text.startswith("[") and text.endswith("]"):
        inner = text[1:-1].strip()
        if inner and "," not in inner:
            return _strip_wrapping_quotes(inner)
    return text


def _parse_string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(item).strip() for item in value if str(item).strip()]
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return [str(item).strip() for item in parsed if str(item).strip()]
        if isinstance(parsed, str):
            text = parsed.strip()
        else:
            text = _unwrap_singleton_brackets(text)
        return [part.strip() for part in text.replace(";", ",").split(",") if part.strip()]
    return [str(value).strip()] if str(value).strip() else []


class Settings(BaseSettings):
    database_url: str = "sqlite+pysqlite:///:memory:"
    sql_echo: bool = False
    default_locale: str = "en"
    # Keep Any here so env parser doesn't force JSON for list fields.
    available_locales: Any = ["en"]
    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    @field_validator("available_locales", mode="before")
    @classmethod
    def _split_locales(cls, value: Any) -> List[str]:
        locales: list[str] = []
        for code in _parse_string_list(value):
            normalized = code.lower()
            if normalized not in locales:
                locales.append(normalized)
        return locales or ["en"]

    @field_validator("default_locale", mode="before")
    @classmethod
    def _normalize_default_locale(cls, value: Any) -> str:
        if value is None:
            return "en"
        text = _unwrap_singleton_brackets(str(value)).strip().lower()
        return text or "en"

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> str:
        text = _unwrap_singleton_brackets(str(value or "")).strip().upper()
        return text or "INFO"

    @model_validator(mode="after")
    def _include_default_locale(self) -> "Settings":
        if self.default_locale not in self.available_locales:
            self.available_locales = [*self.available_locales, self.default_locale]
        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="POLYGLOT_",
        extra="ignore",
    )


settings = Settings()


def get_settings() -> Settings:
    return settings
