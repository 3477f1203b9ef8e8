"""SQLAlchemy adapter package for Bindery."""

from __future__ import annotations

from .mappings import binding_metadata, binding_table, binding_table_name, create_binding_tables
from .repositories import SqlAlchemyBindingRepository
from .unit_of_work import (
    SqlAlchemyBindingUnitOfWork,
    StartupError,
    configured_engine,
    ensure_tables,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyBindingRepository",
    "SqlAlchemyBindingUnitOfWork",
    "StartupError",
    "binding_metadata",
    "binding_table",
    "binding_table_name",
    "configured_engine",
    "create_binding_tables",
    "ensure_tables",
    "is_started",
    "shutdown",
    "startup",
]
