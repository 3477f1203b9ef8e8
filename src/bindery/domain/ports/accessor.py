"""Port for the per-backend dataset accessor."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from bindery.domain.model import ClassSchema, Row


@runtime_checkable
class DatasetAccessor(Protocol):
    """Reads and writes the rows of one business class in one backend.

    Rows are returned untransformed unless ``apply_transform`` is requested;
    the binding engine applies replacement rules itself.
    """

    def get_schema(self) -> ClassSchema: ...

    def fetch_row(
        self,
        identifier_name: str,
        identifier_value: str,
        apply_transform: bool,  # noqa: FBT001
    ) -> Row | None: ...

    def fetch_dataset(
        self,
        transaction_id: str,
        class_name: str,
        filters: Mapping[str, str] | None = None,
    ) -> Sequence[Row]: ...

    def insert_record(
        self,
        class_name: str,
        payload: Mapping[str, str | None],
    ) -> Mapping[str, str] | None:
        """Create a record; return the identifier name -> value pairs it was given."""
        ...

    def update_record(
        self,
        class_name: str,
        identifier_name: str,
        identifier_value: str,
        payload: Mapping[str, str | None],
    ) -> bool: ...

    def identifier_exists(
        self,
        transaction_id: str,
        class_name: str,
        identifier_name: str,
        identifier_value: str,
    ) -> bool: ...
