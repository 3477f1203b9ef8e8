"""Ports for persisting bindings."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from bindery.domain.model import Binding


@runtime_checkable
class BindingRepository(Protocol):
    """Binding table of a single class. Every method may raise ``StoreError``."""

    class_name: str

    def find_by_identifier(self, identifier_name: str, identifier_value: str) -> Binding | None:
        """Return the enabled binding for a local identifier."""
        ...

    def find_by_uuid(self, uuid: UUID, identifier_name: str | None = None) -> Binding | None: ...

    def find_hash(self, uuid: UUID) -> str | None: ...

    def add(
        self,
        uuid: UUID,
        identifier_name: str,
        identifier_value: str,
        content_hash: str | None = None,
    ) -> Binding:
        """Insert an enabled binding, returning the winner if one already exists."""
        ...

    def confirm_seen(self, uuid: UUID, content_hash: str | None) -> int: ...

    def disable(self, identifier_name: str, identifier_value: str) -> int: ...

    def list(self, *, include_disabled: bool = False) -> Sequence[Binding]: ...
