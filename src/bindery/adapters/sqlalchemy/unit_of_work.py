"""SQLAlchemy-backed units of work for binding tables."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from bindery.adapters.sqlalchemy.mappings import create_binding_tables
from bindery.adapters.sqlalchemy.repositories import SqlAlchemyBindingRepository
from bindery.config.binding import DEFAULT_TABLE_PREFIX
from bindery.config.storage import get_database_uri
from bindery.domain.errors import StoreError
from bindery.domain.ports.unit_of_work import BindingRepositories, RepositoryCollection

if TYPE_CHECKING:
    from collections.abc import Iterable
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None
    table_prefix: str = DEFAULT_TABLE_PREFIX
    created_tables: set[str] = field(default_factory=set[str])

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self.created_tables.clear()
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call bindery.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
    table_prefix: str = DEFAULT_TABLE_PREFIX,
    class_names: Iterable[str] = (),
) -> None:
    """Initialise the engine and session factory; create tables for ``class_names``."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(database_uri or get_database_uri(), future=True)
    _STATE.engine = resolved_engine
    _STATE.table_prefix = table_prefix
    ensure_tables(class_names)


def ensure_tables(class_names: Iterable[str]) -> None:
    """Create binding tables not yet created through this adapter."""

    engine = _STATE.engine
    if engine is None:
        raise StartupError("SQLAlchemy adapter not initialised")
    missing = [name for name in class_names if name not in _STATE.created_tables]
    if not missing:
        return
    try:
        create_binding_tables(engine, missing, prefix=_STATE.table_prefix)
    except SQLAlchemyError as exc:
        raise StoreError(f"Creating binding tables failed: {exc}") from exc
    _STATE.created_tables.update(missing)


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections."""

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError(f"Commit failed: {exc}") from exc

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyBindingUnitOfWork(BaseSqlAlchemyUnitOfWork[BindingRepositories]):
    """Unit of work over the binding table of one class.

    The table is created on first use, so classes registered after startup
    need no migration step.
    """

    def __init__(self, class_name: str) -> None:
        super().__init__()
        self.class_name = class_name
        ensure_tables([class_name])

    def _build_repositories(self, session: Session) -> BindingRepositories:
        return BindingRepositories(
            bindings=SqlAlchemyBindingRepository(
                session, self.class_name, prefix=_STATE.table_prefix
            ),
        )


if TYPE_CHECKING:
    from bindery.domain.ports.unit_of_work import BindingUnitOfWork, BindingUnitOfWorkFactory

    _uow_check: BindingUnitOfWork = SqlAlchemyBindingUnitOfWork("example")
    _factory_check: BindingUnitOfWorkFactory = SqlAlchemyBindingUnitOfWork
