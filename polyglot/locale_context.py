from __future__ import annotations

import inspect
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Optional

from polyglot.config import Settings, get_settings
from polyglot.errors import LocaleError


def normalize_locale(code: Optional[str]) -> str:
    normalized = (code or "").strip().lower()
    if not normalized:
        raise LocaleError(f"Locale code must not be blank: {code!r}")
    return normalized


def _unique_locales(codes: Iterable[str], default: str) -> tuple[str, ...]:
    result: list[str] = []
    for code in codes:
        normalized = normalize_locale(code)
        if normalized not in result:
            result.append(normalized)
    if default not in result:
        result.append(default)
    return tuple(result)


class LocaleContext:
    """Request-scoped view of the active, default and available locales.

    The unit of work that owns the context may switch the active locale with
    :meth:`use`; readers only call the accessors and must do so on every
    resolution instead of keeping the returned value around.
    """

    def __init__(
        self,
        active: Optional[str] = None,
        available: Iterable[str] = (),
        default: str = "en",
    ) -> None:
        self._default = normalize_locale(default)
        self._active = normalize_locale(active) if active else self._default
        self._available = _unique_locales(available, self._default)

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, active: Optional[str] = None
    ) -> "LocaleContext":
        settings = settings or get_settings()
        return cls(
            active=active,
            available=settings.available_locales,
            default=settings.default_locale,
        )

    def active_locale(self) -> str:
        return self._active

    def available_locales(self) -> tuple[str, ...]:
        return self._available

    def default_locale(self) -> str:
        return self._default

    @contextmanager
    def use(self, locale: str) -> Iterator["LocaleContext"]:
        previous = self._active
        self._active = normalize_locale(locale)
        try:
            yield self
        finally:
            self._active = previous

    def __repr__(self) -> str:
        return (
            f"LocaleContext(active={self._active!r}, "
            f"available={list(self._available)!r}, default={self._default!r})"
        )


def _declared_default(source: Any) -> Optional[str]:
    value = getattr(source, "default_locale", None)
    if isinstance(source, type):
        # On the class only plain values and classmethods are usable;
        # instance methods and mapped columns belong to the instance lookup.
        if inspect.ismethod(value):
            value = value()
        elif not isinstance(value, str):
            return None
    elif callable(value):
        value = value()
    if not value or not str(value).strip():
        return None
    return normalize_locale(str(value))


def resolve_default_locale(entity: Any, context: LocaleContext) -> str:
    """Default locale for ``entity``: instance override, class override, then context."""
    return (
        _declared_default(entity)
        or _declared_default(type(entity))
        or context.default_locale()
    )
