"""Request envelopes handed in by the connector for get/update."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .schema import is_identifier_key

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID


@dataclass(slots=True, kw_only=True)
class GetRequest:
    """Asks for the current field values of the object known as ``uuid``.

    ``values`` is filled by the binding service; reference fields carry the
    referenced object's UUID as a string, or ``None`` if it could not be
    resolved.
    """

    transaction_id: str
    uuid: UUID
    values: dict[str, str | None] = field(default_factory=dict[str, "str | None"])

    def put(self, key: str, value: str | None) -> None:
        self.values[key] = value


@dataclass(slots=True, kw_only=True)
class UpdateRequest:
    """Field values to persist for the object known as ``uuid``."""

    transaction_id: str
    uuid: UUID
    values: Mapping[str, str | None]

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def identifier_values(self) -> dict[str, str | None]:
        return {key: value for key, value in self.values.items() if is_identifier_key(key)}
