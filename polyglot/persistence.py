import logging
from typing import Any, TypeVar

from sqlalchemy.orm import Session

from polyglot.models import Translatable

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT")


def save(session: Session, entity: EntityT) -> EntityT:
    """Write ``entity`` and then its pending translations.

    The entity row is flushed first so its translations can reference it.
    Translations go through the entity's own resolver, which works in the
    session the entity was just added to. A failing translation propagates
    and leaves the rollback to the caller's unit of work.
    """
    session.add(entity)
    session.flush()
    if isinstance(entity, Translatable):
        records = entity.after_save()
        if records:
            logger.debug("Saved %d translation(s) for %r", len(records), entity)
    return entity


def delete(session: Session, entity: Any) -> None:
    session.delete(entity)
    session.flush()
