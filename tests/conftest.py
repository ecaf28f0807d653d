from __future__ import annotations

import os
import sys
from typing import Iterator

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

TESTS_ROOT = os.path.abspath(os.path.dirname(__file__))
if TESTS_ROOT not in sys.path:
    sys.path.insert(0, TESTS_ROOT)

from polyglot.database import build_engine  # noqa: E402
from polyglot.locale_context import LocaleContext  # noqa: E402
from polyglot.models import Base  # noqa: E402
from sample_models import LOCALES  # noqa: E402


@pytest.fixture
def engine() -> Iterator[Engine]:
    engine = build_engine("sqlite+pysqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False, class_=Session)


@pytest.fixture
def session(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def context() -> LocaleContext:
    return LocaleContext(active="en", available=LOCALES, default="en")
