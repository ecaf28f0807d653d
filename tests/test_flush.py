from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy import delete as delete_rows, func, insert, select
from sqlalchemy.orm import Session, sessionmaker

from polyglot.errors import TranslationValidationError
from polyglot.locale_context import LocaleContext
from polyglot.persistence import delete, save
from polyglot.resolver import TranslationResolver
from polyglot.store import SQLAlchemyTranslationStore
from sample_models import LOCALES, Article, ArticleTranslation


def _count_translations(session: Session) -> int:
    return session.scalar(select(func.count()).select_from(ArticleTranslation))


def _rows(session: Session) -> dict[str, tuple[str | None, str | None]]:
    result = session.execute(
        select(ArticleTranslation.locale, ArticleTranslation.title, ArticleTranslation.body)
    )
    return {locale: (title, body) for locale, title, body in result}


def test_save_creates_translation_records(session: Session, context: LocaleContext) -> None:
    article = Article(slug="hello").bind_locale_context(context)
    article.title = "Hello"
    article.fr_title = "Bonjour"
    article.fr_body = "Corps"
    save(session, article)

    assert _rows(session) == {"en": ("Hello", None), "fr": ("Bonjour", "Corps")}
    assert article.translation_overlay.is_empty()
    assert all(record.owner_id == article.id for record in article.translations)


def test_reads_after_flush_come_from_records(session: Session, context: LocaleContext) -> None:
    article = Article(slug="hello").bind_locale_context(context)
    article.title = "Hello"
    save(session, article)
    assert article.title == "Hello"
    assert article.en_title == "Hello"
    assert article.all_translated_attributes()["en"] == {"title": "Hello", "body": None}


def test_flush_with_empty_overlay_is_noop(session: Session, context: LocaleContext) -> None:
    article = Article(slug="hello").bind_locale_context(context)
    save(session, article)
    assert article.after_save() == []
    assert _count_translations(session) == 0


def test_flush_merges_into_existing_record(session: Session, context: LocaleContext) -> None:
    article = Article(slug="hello").bind_locale_context(context)
    article.title = "Title"
    article.body = "Body"
    save(session, article)
    record = article.translations[0]

    article.body = "Body 2"
    save(session, article)

    assert _count_translations(session) == 1
    assert article.translations[0] is record
    assert _rows(session) == {"en": ("Title", "Body 2")}


def test_flushing_same_pending_state_twice_is_idempotent(session: Session, context: LocaleContext) -> None:
    article = Article(slug="hello").bind_locale_context(context)
    article.title = "Same"
    article.de_title = "Gleich"
    save(session, article)
    first = _rows(session)

    article.title = "Same"
    article.de_title = "Gleich"
    save(session, article)

    assert _rows(session) == first
    assert _count_translations(session) == 2


def test_round_trip_through_fresh_session(session_factory: sessionmaker) -> None:
    with session_factory() as session:
        context = LocaleContext(active="fr", available=LOCALES, default="en")
        article = Article(slug="trip").bind_locale_context(context)
        article.title = "Bonjour"
        save(session, article)
        session.commit()
        article_id = article.id

    with session_factory() as session:
        context = LocaleContext(active="fr", available=LOCALES, default="en")
        loaded = session.get(Article, article_id).bind_locale_context(context)
        assert loaded.translation_overlay.is_empty()
        assert loaded.title == "Bonjour"
        with context.use("de"):
            # falls back to the only record there is
            assert loaded.title == "Bonjour"
            assert loaded.de_title is None


def test_loaded_relationship_is_newest_first(session_factory: sessionmaker) -> None:
    with session_factory() as session:
        article = Article(slug="order")
        article.translations.extend(
            [
                ArticleTranslation(locale="en", title="a", created_at=datetime(2024, 1, 1)),
                ArticleTranslation(locale="fr", title="b", created_at=datetime(2024, 1, 3)),
                ArticleTranslation(locale="de", title="c", created_at=datetime(2024, 1, 2)),
            ]
        )
        save(session, article)
        session.commit()
        article_id = article.id

    with session_factory() as session:
        loaded = session.get(Article, article_id)
        assert [record.locale for record in loaded.translations] == ["fr", "de", "en"]


def test_duplicate_insert_surfaces_validation_error(session: Session, context: LocaleContext) -> None:
    article = Article(slug="race").bind_locale_context(context)
    save(session, article)
    assert article.translations == []

    # another unit of work wrote the "en" row behind our back
    session.execute(
        insert(ArticleTranslation.__table__).values(
            owner_id=article.id, locale="en", title="theirs", created_at=datetime(2024, 1, 1)
        )
    )

    article.title = "ours"
    with pytest.raises(TranslationValidationError) as excinfo:
        save(session, article)

    assert excinfo.value.locale == "en"
    assert _rows(session) == {"en": ("theirs", None)}
    assert [record.title for record in article.translations] == ["theirs"]
    # nothing was persisted, so the edit stays pending
    assert article.translation_overlay.get("en", "title") == "ours"


def test_failed_locale_stops_the_flush(session: Session, context: LocaleContext) -> None:
    article = Article(slug="race").bind_locale_context(context)
    save(session, article)
    assert article.translations == []
    session.execute(
        insert(ArticleTranslation.__table__).values(
            owner_id=article.id, locale="fr", title="theirs", created_at=datetime(2024, 1, 1)
        )
    )

    article.de_title = "Hallo"
    article.fr_title = "Salut"
    article.pt_br_title = "Olá"
    with pytest.raises(TranslationValidationError):
        save(session, article)

    # locales are flushed in insertion order: de went through, fr failed, pt-br never ran
    assert _rows(session) == {"de": ("Hallo", None), "fr": ("theirs", None)}
    # every edit stays pending until the whole flush succeeds
    assert article.translation_overlay.all_locales_with_pending() == {"de", "fr", "pt-br"}


def test_retry_after_rollback_writes_every_locale(session: Session, context: LocaleContext) -> None:
    article = Article(slug="retry").bind_locale_context(context)
    save(session, article)
    assert article.translations == []
    session.commit()
    session.execute(
        insert(ArticleTranslation.__table__).values(
            owner_id=article.id, locale="fr", title="theirs", created_at=datetime(2024, 1, 1)
        )
    )
    session.commit()

    article.de_title = "Hallo"
    article.fr_title = "Salut"
    with pytest.raises(TranslationValidationError):
        save(session, article)
    session.rollback()
    assert _rows(session) == {"fr": ("theirs", None)}

    table = ArticleTranslation.__table__
    session.execute(delete_rows(table).where(table.c.locale == "fr"))
    session.commit()

    save(session, article)
    session.commit()

    assert _rows(session) == {"de": ("Hallo", None), "fr": ("Salut", None)}
    assert article.translation_overlay.is_empty()


class RecordingResolver(TranslationResolver):
    def __init__(self) -> None:
        super().__init__(SQLAlchemyTranslationStore())
        self.flushed: list[Article] = []

    def flush(self, entity: Article) -> list[ArticleTranslation]:
        self.flushed.append(entity)
        return super().flush(entity)


def test_save_uses_class_level_resolver(
    monkeypatch: pytest.MonkeyPatch, session: Session, context: LocaleContext
) -> None:
    resolver = RecordingResolver()
    monkeypatch.setattr(Article, "__translation_resolver__", resolver)

    article = Article(slug="hooked").bind_locale_context(context)
    article.title = "Hello"
    save(session, article)

    assert resolver.flushed == [article]
    assert _rows(session) == {"en": ("Hello", None)}


def test_delete_cascades_to_loaded_translations(session: Session, context: LocaleContext) -> None:
    article = Article(slug="gone").bind_locale_context(context)
    article.title = "Hello"
    article.fr_title = "Bonjour"
    save(session, article)
    assert len(article.translations) == 2

    delete(session, article)
    assert _count_translations(session) == 0


def test_delete_cascades_in_the_database(session_factory: sessionmaker) -> None:
    with session_factory() as session:
        context = LocaleContext(active="en", available=LOCALES, default="en")
        article = Article(slug="gone").bind_locale_context(context)
        article.title = "Hello"
        article.de_title = "Hallo"
        save(session, article)
        session.commit()
        article_id = article.id

    with session_factory() as session:
        # translations are never loaded here, the foreign key removes them
        delete(session, session.get(Article, article_id))
        session.commit()
        assert _count_translations(session) == 0
