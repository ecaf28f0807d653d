from __future__ import annotations

from typing import Any, Optional


class PolyglotError(Exception):
    """Base class for every error raised by polyglot."""


class LocaleError(PolyglotError, ValueError):
    """Raised for a blank or otherwise unusable locale code."""


class TranslationConfigError(PolyglotError):
    """Raised when translated attributes are wired in a way that cannot work."""


class TranslationValidationError(PolyglotError):
    """Raised when a translation record cannot be persisted."""

    def __init__(
        self,
        reason: str,
        *,
        owner: Any = None,
        locale: Optional[str] = None,
    ) -> None:
        super().__init__(f"{reason} (locale={locale!r})")
        self.reason = reason
        self.owner = owner
        self.locale = locale
