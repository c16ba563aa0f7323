from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from unifyr.adapters.sqlalchemy import start_mappers
from unifyr.adapters.sqlalchemy.migrations import upgrade_head
from unifyr.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyIngestUnitOfWork,
    SqlAlchemyTransformUnitOfWork,
    shutdown,
    startup,
)

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_started(sqlite_engine: Engine) -> Iterator[Engine]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield sqlite_engine
    finally:
        shutdown()


@pytest.fixture
def sqlite_transform_unit_of_work(
    sqlite_started: Engine,
) -> Callable[[], SqlAlchemyTransformUnitOfWork]:
    _ = sqlite_started

    def factory() -> SqlAlchemyTransformUnitOfWork:
        return SqlAlchemyTransformUnitOfWork()

    return factory


@pytest.fixture
def sqlite_ingest_unit_of_work(
    sqlite_started: Engine,
) -> Callable[[], SqlAlchemyIngestUnitOfWork]:
    _ = sqlite_started

    def factory() -> SqlAlchemyIngestUnitOfWork:
        return SqlAlchemyIngestUnitOfWork()

    return factory
