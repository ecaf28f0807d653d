from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

from polyglot.enums import ResolverAction
from polyglot.errors import TranslationConfigError, TranslationValidationError
from polyglot.locale_context import LocaleContext, normalize_locale, resolve_default_locale
from polyglot.overlay import MISSING
from polyglot.store import SQLAlchemyTranslationStore, TranslationStore

logger = logging.getLogger(__name__)


def is_blank(value: Any) -> bool:
    """``None``, the empty string and the overlay's MISSING sentinel count as blank."""
    return value is MISSING or value is None or (isinstance(value, str) and value == "")


def _detect(records: Iterable[Any], locale: str, attribute: str) -> Optional[Any]:
    for record in records:
        if record.locale == locale and not is_blank(getattr(record, attribute)):
            return record
    return None


class TranslationResolver:
    """Reads translated attributes through the fallback chain and flushes edits.

    Reads of ``attribute`` under locale ``L`` return the first of:

    1. a pending (unsaved) non-blank value for ``L``;
    2. ``None`` when the entity has never been saved;
    3. the non-blank value of the ``L`` record;
    4. the non-blank value of the default-locale record;
    5. the value of the most recently created record, blank or not.

    Fixed-locale reads stop after step 3.
    """

    def __init__(self, store: TranslationStore) -> None:
        self.store = store

    def _attribute_names(self, entity: Any) -> tuple[str, ...]:
        return type(entity).translated_attribute_names()

    def _check_attribute(self, entity: Any, attribute: str) -> None:
        if attribute not in self._attribute_names(entity):
            raise TranslationConfigError(
                f"{type(entity).__name__}.{attribute} is not a translated attribute"
            )

    def read(self, entity: Any, attribute: str, context: LocaleContext) -> Any:
        self._check_attribute(entity, attribute)
        locale = context.active_locale()

        pending = entity.translation_overlay.get(locale, attribute)
        if not is_blank(pending):
            return pending
        if not self.store.is_persisted(entity):
            return None

        records = self.store.list(entity)
        translation = (
            _detect(records, locale, attribute)
            or _detect(records, resolve_default_locale(entity, context), attribute)
            or (records[0] if records else None)
        )
        return getattr(translation, attribute) if translation is not None else None

    def read_fixed(self, entity: Any, attribute: str, locale: str) -> Any:
        self._check_attribute(entity, attribute)
        locale = normalize_locale(locale)

        pending = entity.translation_overlay.get(locale, attribute)
        if not is_blank(pending):
            return pending
        if not self.store.is_persisted(entity):
            return None

        translation = _detect(self.store.list(entity), locale, attribute)
        return getattr(translation, attribute) if translation is not None else None

    def write(self, entity: Any, attribute: str, value: Any, context: LocaleContext) -> None:
        self._check_attribute(entity, attribute)
        entity.translation_overlay.set(context.active_locale(), attribute, value)

    def write_fixed(self, entity: Any, attribute: str, value: Any, locale: str) -> None:
        self._check_attribute(entity, attribute)
        entity.translation_overlay.set(normalize_locale(locale), attribute, value)

    def flush(self, entity: Any) -> list[Any]:
        """Persist pending values of ``entity``; call after the entity row is saved.

        Each locale is merged onto its record and persisted before moving on.
        The overlay is cleared only once every locale has persisted. A failure
        leaves the failing record as it is in the database, keeps every edit
        pending and propagates, so a retry after the caller rolls back
        redoes all locales.
        """
        overlay = entity.translation_overlay
        if overlay.is_empty():
            return []

        locales = sorted(overlay.all_locales_with_pending())
        logger.debug("resolver.%s entity=%r locales=%s", ResolverAction.FLUSH_START, entity, locales)

        persisted: list[Any] = []
        for locale, attributes in list(overlay.items()):
            record = self.store.find_or_create(entity, locale)
            record_cls = type(record)
            unknown = [name for name in attributes if not hasattr(record_cls, name)]
            if unknown:
                raise TranslationConfigError(
                    f"{record_cls.__name__} has no column for translated attributes {unknown}"
                )
            for name, value in attributes.items():
                setattr(record, name, value)
            try:
                self.store.persist(entity, record)
            except TranslationValidationError as exc:
                logger.warning(
                    "resolver.%s entity=%r locale=%s reason=%s",
                    ResolverAction.FLUSH_FAILED,
                    entity,
                    locale,
                    exc.reason,
                )
                raise
            persisted.append(record)

        overlay.clear()
        logger.debug("resolver.%s entity=%r count=%d", ResolverAction.FLUSH_DONE, entity, len(persisted))
        return persisted

    def bulk(self, entity: Any, context: LocaleContext) -> Dict[str, Dict[str, Any]]:
        names = self._attribute_names(entity)
        by_locale: Dict[str, Any] = {}
        if self.store.is_persisted(entity):
            by_locale = {record.locale: record for record in self.store.list(entity)}
        return {
            locale: {name: getattr(by_locale.get(locale), name, None) for name in names}
            for locale in context.available_locales()
        }


default_resolver = TranslationResolver(SQLAlchemyTranslationStore())
