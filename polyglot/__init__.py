from polyglot.errors import (
    LocaleError,
    PolyglotError,
    TranslationConfigError,
    TranslationValidationError,
)
from polyglot.locale_context import LocaleContext, normalize_locale, resolve_default_locale
from polyglot.models import (
    Base,
    Translatable,
    TranslatedAttributes,
    TranslationRecord,
    translated_attributes,
)
from polyglot.overlay import MISSING, AttributeOverlay
from polyglot.persistence import delete, save
from polyglot.resolver import TranslationResolver, is_blank
from polyglot.store import SQLAlchemyTranslationStore, TranslationStore

__all__ = [
    "AttributeOverlay",
    "Base",
    "LocaleContext",
    "LocaleError",
    "MISSING",
    "PolyglotError",
    "SQLAlchemyTranslationStore",
    "Translatable",
    "TranslatedAttributes",
    "TranslationConfigError",
    "TranslationRecord",
    "TranslationResolver",
    "TranslationStore",
    "TranslationValidationError",
    "delete",
    "is_blank",
    "normalize_locale",
    "resolve_default_locale",
    "save",
    "translated_attributes",
]
