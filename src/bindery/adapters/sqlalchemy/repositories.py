"""Binding repository backed by SQLAlchemy sessions."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import insert, select, update
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import SQLAlchemyError

from bindery.adapters.sqlalchemy.mappings import binding_table, utcnow
from bindery.config.binding import DEFAULT_TABLE_PREFIX
from bindery.domain.errors import StoreError
from bindery.domain.model import Binding

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from uuid import UUID

    from sqlalchemy import Row, Select, Table
    from sqlalchemy.orm import Session
    from sqlalchemy.sql.dml import Insert

log = logging.getLogger(__name__)


@contextmanager
def translate_errors(action: str) -> Iterator[None]:
    """Re-raise driver and SQLAlchemy failures as ``StoreError``."""

    try:
        yield
    except SQLAlchemyError as exc:
        raise StoreError(f"{action} failed: {exc}") from exc


class SqlAlchemyBindingRepository:
    """Binding table of one class. All statements are parameterised."""

    def __init__(
        self,
        session: Session,
        class_name: str,
        *,
        prefix: str = DEFAULT_TABLE_PREFIX,
    ) -> None:
        self.session = session
        self.class_name = class_name
        self.table: Table = binding_table(class_name, prefix=prefix)

    def find_by_identifier(self, identifier_name: str, identifier_value: str) -> Binding | None:
        stmt = (
            self._enabled()
            .where(self.table.c.name == identifier_name)
            .where(self.table.c.id == identifier_value)
        )
        return self._first(stmt, "binding lookup")

    def find_by_uuid(self, uuid: UUID, identifier_name: str | None = None) -> Binding | None:
        stmt = self._enabled().where(self.table.c.uuid == uuid)
        if identifier_name is not None:
            stmt = stmt.where(self.table.c.name == identifier_name)
        return self._first(stmt, "reverse binding lookup")

    def find_hash(self, uuid: UUID) -> str | None:
        column = self.table.c.hash
        stmt = (
            select(column)
            .where(self.table.c.uuid == uuid)
            .where(self.table.c.disabled.is_(False))
            .where(column.is_not(None))
            .where(column != "")
            .order_by(self.table.c.actual.desc())
            .limit(1)
        )
        with translate_errors("hash lookup"):
            return self.session.execute(stmt).scalar_one_or_none()

    def add(
        self,
        uuid: UUID,
        identifier_name: str,
        identifier_value: str,
        content_hash: str | None = None,
    ) -> Binding:
        """Insert an enabled binding unless one exists; return the enabled binding.

        The earliest enabled binding wins, so a caller racing another writer for
        the same identifier gets the other writer's UUID back.
        """

        values: dict[str, Any] = {
            "uuid": uuid,
            "id": identifier_value,
            "name": identifier_name,
            "disabled": False,
            "actual": utcnow(),
            "value": "",
            "hash": content_hash,
        }
        with translate_errors("binding insert"):
            self.session.execute(self._insert_ignoring_conflicts().values(**values))
        winner = self.find_by_identifier(identifier_name, identifier_value)
        if winner is None:
            raise StoreError(
                f"Binding {self.class_name} {identifier_name}={identifier_value} vanished after insert"
            )
        if winner.uuid != uuid:
            log.info(
                "%s %s=%s already bound to %s",
                self.class_name,
                identifier_name,
                identifier_value,
                winner.uuid,
            )
        return winner

    def confirm_seen(self, uuid: UUID, content_hash: str | None) -> int:
        stmt = (
            update(self.table)
            .where(self.table.c.uuid == uuid)
            .where(self.table.c.disabled.is_(False))
            .values(actual=utcnow(), hash=content_hash)
        )
        with translate_errors("binding confirmation"):
            return self.session.execute(stmt).rowcount

    def disable(self, identifier_name: str, identifier_value: str) -> int:
        stmt = (
            update(self.table)
            .where(self.table.c.name == identifier_name)
            .where(self.table.c.id == identifier_value)
            .where(self.table.c.disabled.is_(False))
            .values(disabled=True)
        )
        with translate_errors("binding disable"):
            disabled = self.session.execute(stmt).rowcount
        log.info(
            "Disabled %d %s binding(s) for %s=%s",
            disabled,
            self.class_name,
            identifier_name,
            identifier_value,
        )
        return disabled

    def list(self, *, include_disabled: bool = False) -> Sequence[Binding]:
        stmt = select(self.table).order_by(self.table.c.actual, self.table.c.uuid)
        if not include_disabled:
            stmt = stmt.where(self.table.c.disabled.is_(False))
        with translate_errors("binding listing"):
            rows = self.session.execute(stmt).all()
        return [self._to_binding(row) for row in rows]

    def _enabled(self) -> Select[Any]:
        return (
            select(self.table)
            .where(self.table.c.disabled.is_(False))
            .order_by(self.table.c.actual)
            .limit(1)
        )

    def _first(self, stmt: Select[Any], action: str) -> Binding | None:
        with translate_errors(action):
            row = self.session.execute(stmt).first()
        return None if row is None else self._to_binding(row)

    def _insert_ignoring_conflicts(self) -> Insert:
        dialect = self.session.get_bind().dialect.name
        if dialect == "sqlite":
            return insert(self.table).prefix_with("OR IGNORE")
        if dialect == "postgresql":
            return postgresql.insert(self.table).on_conflict_do_nothing()
        return insert(self.table)

    def _to_binding(self, row: Row[Any]) -> Binding:
        mapping = row._mapping  # noqa: SLF001
        return Binding(
            uuid=mapping["uuid"],
            class_name=self.class_name,
            identifier_name=mapping["name"],
            identifier_value=mapping["id"],
            disabled=bool(mapping["disabled"]),
            last_confirmed=mapping["actual"],
            content_hash=mapping["hash"],
        )


if TYPE_CHECKING:
    from typing import cast

    from bindery.domain.ports.persistence import BindingRepository

    _session_stub = cast("Session", object())
    _repo_check: BindingRepository = SqlAlchemyBindingRepository(_session_stub, "example")
