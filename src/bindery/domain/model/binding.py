"""Persisted association between a canonical UUID and one local identifier."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


@dataclass(frozen=True, slots=True, kw_only=True)
class Binding:
    """One row of a class binding table.

    A UUID owns one binding per identifier alias. Superseded bindings are
    disabled, never deleted.
    """

    uuid: UUID
    class_name: str
    identifier_name: str
    identifier_value: str
    disabled: bool = False
    last_confirmed: datetime | None = None
    content_hash: str | None = None
