"""Port for the shared bus that federates peer systems."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID


@runtime_checkable
class BusConnector(Protocol):
    """Asks peer systems to resolve identifiers to canonical UUIDs.

    Implementations raise ``TransportError`` on failure or timeout.
    """

    def unify(
        self,
        transaction_id: str,
        class_name: str,
        identifier_name: str,
        identifier_value: str,
        self_request: bool,  # noqa: FBT001
    ) -> UUID | None: ...

    def record_incoming(self, transaction_id: str, class_name: str) -> None:
        """Note that a peer asked this system about ``class_name`` in a transaction."""
        ...

    def is_self_request(self, transaction_id: str, class_name: str) -> bool: ...
