"""Immutable collaborators shared by the resolution and sync operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from bindery.domain.model import IdentifierMap

from .hashing import DEFAULT_ALGORITHM

if TYPE_CHECKING:
    from bindery.domain.model import ClassSchema
    from bindery.domain.ports import (
        BindingUnitOfWork,
        BindingUnitOfWorkFactory,
        BusConnector,
        DatasetAccessor,
    )


@dataclass(frozen=True, slots=True, kw_only=True)
class BindingContext:
    """Everything a binding operation needs for one class.

    The identifier map is derived once from the schema; nothing in here
    changes between calls, so a context can be shared by concurrent requests.
    """

    schema: ClassSchema
    identifiers: IdentifierMap
    accessor: DatasetAccessor
    unit_of_work_factory: BindingUnitOfWorkFactory
    bus: BusConnector | None = None
    hash_algorithm: str = DEFAULT_ALGORITHM
    register_unknown: bool = True

    @classmethod
    def build(
        cls,
        *,
        accessor: DatasetAccessor,
        unit_of_work_factory: BindingUnitOfWorkFactory,
        system_id: str,
        bus: BusConnector | None = None,
        hash_algorithm: str = DEFAULT_ALGORITHM,
        register_unknown: bool = True,
    ) -> BindingContext:
        schema = accessor.get_schema()
        return cls(
            schema=schema,
            identifiers=IdentifierMap.from_schema(schema, system_id=system_id),
            accessor=accessor,
            unit_of_work_factory=unit_of_work_factory,
            bus=bus,
            hash_algorithm=hash_algorithm,
            register_unknown=register_unknown,
        )

    @property
    def class_name(self) -> str:
        return self.schema.name

    def unit_of_work(self) -> BindingUnitOfWork:
        return self.unit_of_work_factory(self.class_name)
