from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from bindery.adapters.sqlalchemy import create_binding_tables
from bindery.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyBindingUnitOfWork,
    shutdown,
    startup,
)

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    create_binding_tables(engine, ["Employee"])
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
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[str], SqlAlchemyBindingUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory(class_name: str) -> SqlAlchemyBindingUnitOfWork:
        return SqlAlchemyBindingUnitOfWork(class_name)

    try:
        yield factory
    finally:
        shutdown()
