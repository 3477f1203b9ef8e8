"""SQLAlchemy table metadata for binding tables.

One table per business class, named ``<prefix>_<class>``. Column names match
the binding tables written by earlier connector versions so an existing store
can be reused as is.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Index,
    MetaData,
    String,
    Table,
    TypeDecorator,
    false,
)

from bindery.config.binding import DEFAULT_TABLE_PREFIX

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

# dialects with partial unique indexes; elsewhere duplicate enabled bindings stay possible
UNIQUE_BINDING_DIALECTS = ("sqlite", "postgresql")


class UUIDText(TypeDecorator[uuid.UUID]):
    """Canonical UUIDs stored in their dashed text form."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value: uuid.UUID | str | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: Dialect) -> uuid.UUID | None:
        _ = dialect
        if value is None:
            return None
        return uuid.UUID(value)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def utcnow() -> datetime:
    return datetime.now(UTC)


binding_metadata = MetaData()


def binding_table_name(class_name: str, *, prefix: str = DEFAULT_TABLE_PREFIX) -> str:
    return f"{prefix}_{class_name}"


def binding_table(
    class_name: str,
    *,
    prefix: str = DEFAULT_TABLE_PREFIX,
    metadata: MetaData = binding_metadata,
) -> Table:
    """Return the binding table of ``class_name``, defining it on first use."""

    name = binding_table_name(class_name, prefix=prefix)
    existing = metadata.tables.get(name)
    if existing is not None:
        return existing

    table = Table(
        name,
        metadata,
        Column("uuid", UUIDText, nullable=False),
        Column("id", String(255), nullable=False),
        Column("name", String(255), nullable=False),
        Column("disabled", Boolean, nullable=False, default=False),
        Column("actual", UTCDateTime, nullable=False, default=utcnow),
        Column("value", String(255), nullable=False, default=""),
        Column("hash", String(128), nullable=True),
    )
    Index(f"ix_{name}_uuid", table.c.uuid)
    Index(
        f"uq_{name}_enabled_identifier",
        table.c.name,
        table.c.id,
        unique=True,
        sqlite_where=table.c.disabled == false(),
        postgresql_where=table.c.disabled == false(),
    ).ddl_if(dialect=UNIQUE_BINDING_DIALECTS)
    return table


def create_binding_tables(
    engine: Engine,
    class_names: Iterable[str],
    *,
    prefix: str = DEFAULT_TABLE_PREFIX,
) -> list[Table]:
    """Create missing binding tables; existing tables are left untouched."""

    tables = [binding_table(class_name, prefix=prefix) for class_name in class_names]
    for table in tables:
        table.create(engine, checkfirst=True)
        log.debug("Ensured binding table %s", table.name)
    if engine.dialect.name not in UNIQUE_BINDING_DIALECTS:
        log.warning(
            "Dialect %s has no partial unique index support; concurrent first-time "
            "resolution of one identifier may bind it twice",
            engine.dialect.name,
        )
    return tables
