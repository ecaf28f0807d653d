import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, NoReturn, Optional

from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, object_session

from polyglot.enums import TranslationStoreAction
from polyglot.errors import LocaleError, TranslationValidationError
from polyglot.locale_context import normalize_locale

logger = logging.getLogger(__name__)


class TranslationStore(ABC):
    """Where the translation records of an owning entity live."""

    @abstractmethod
    def find_or_create(self, owner: Any, locale: str) -> Any:
        """Existing record of ``owner`` for ``locale`` or a new unsaved one."""

    @abstractmethod
    def list(self, owner: Any) -> list[Any]:
        """Records of ``owner``, most recently created first."""

    @abstractmethod
    def persist(self, owner: Any, record: Any) -> Any:
        """Insert or update ``record``; raise TranslationValidationError on failure."""

    @abstractmethod
    def is_persisted(self, owner: Any) -> bool:
        """Whether ``owner`` has a database identity."""

    def _log(self, action: TranslationStoreAction, level: int = logging.DEBUG, **kwargs: Any) -> None:
        logger.log(level, "translation_store.%s %s", action, kwargs)


def _natural_order_key(record: Any) -> tuple[datetime, int]:
    return (record.created_at or datetime.min, record.id or 0)


class SQLAlchemyTranslationStore(TranslationStore):
    """Translation store backed by the ``translations`` relationship of the owner.

    Without an explicit session the store works with whatever session the
    owner is attached to, so a single instance can serve every entity.
    """

    def __init__(self, session: Optional[Session] = None) -> None:
        self.session = session

    def _session_for(self, owner: Any) -> Optional[Session]:
        return self.session or object_session(owner)

    def is_persisted(self, owner: Any) -> bool:
        return inspect(owner).has_identity

    def find_or_create(self, owner: Any, locale: str) -> Any:
        for record in owner.translations:
            if record.locale == locale:
                self._log(TranslationStoreAction.FIND, owner_id=owner.id, locale=locale)
                return record
        record = type(owner).translation_class()(locale=locale)
        self._log(TranslationStoreAction.CREATE, owner_id=owner.id, locale=locale)
        return record

    def list(self, owner: Any) -> list[Any]:
        records = sorted(owner.translations, key=_natural_order_key, reverse=True)
        self._log(TranslationStoreAction.LIST, owner_id=owner.id, count=len(records))
        return records

    def persist(self, owner: Any, record: Any) -> Any:
        session = self._session_for(owner)
        if session is None or not self.is_persisted(owner):
            self._reject(owner, record, "owner must be saved before its translations")

        is_new = not any(other is record for other in owner.translations)
        try:
            locale = normalize_locale(record.locale)
        except LocaleError:
            self._revert(session, owner, record, is_new)
            self._reject(owner, record, "locale can't be blank")
        if record.locale != locale:
            record.locale = locale
        for other in owner.translations:
            if other is not record and other.locale == locale:
                self._revert(session, owner, record, is_new)
                self._reject(owner, record, "locale has already been taken")

        try:
            with session.begin_nested():
                if is_new:
                    owner.translations.append(record)
                session.flush()
        except IntegrityError as exc:
            self._revert(session, owner, record, is_new)
            self._reject(owner, record, "locale has already been taken", cause=exc)
        except SQLAlchemyError as exc:
            self._revert(session, owner, record, is_new)
            self._log(
                TranslationStoreAction.REJECT,
                logging.ERROR,
                owner_id=owner.id,
                locale=locale,
                error=exc.__class__.__name__,
            )
            raise

        self._log(
            TranslationStoreAction.PERSIST,
            logging.INFO,
            owner_id=owner.id,
            locale=locale,
            created=is_new,
        )
        return record

    def _revert(self, session: Session, owner: Any, record: Any, is_new: bool) -> None:
        # The savepoint rollback already expired what it touched; make sure the
        # collection and the record agree with the database again.
        if is_new:
            if any(other is record for other in owner.translations):
                owner.translations.remove(record)
            if record in session:
                session.expunge(record)
        elif inspect(record).persistent:
            session.expire(record)

    def _reject(
        self,
        owner: Any,
        record: Any,
        reason: str,
        cause: Optional[BaseException] = None,
    ) -> NoReturn:
        self._log(
            TranslationStoreAction.REJECT,
            logging.WARNING,
            owner_id=getattr(owner, "id", None),
            locale=record.locale,
            reason=reason,
        )
        raise TranslationValidationError(reason, owner=owner, locale=record.locale) from cause
