"""Connector-facing facade dispatching to one binding service per class."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .context import BindingContext
from .hashing import DEFAULT_ALGORITHM
from .service import BindingService, unify_via_bus

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from bindery.domain.model import GetRequest, UpdateRequest
    from bindery.domain.ports import BindingUnitOfWorkFactory, BusConnector, DatasetAccessor

    from .contracts import (
        GetResult,
        IdentifierResolution,
        MatchResult,
        ModificationCheck,
        UpdateResult,
        UuidResolution,
    )

log = logging.getLogger(__name__)


class UnknownClassError(KeyError):
    """Raised when no accessor is registered for a class name."""


@dataclass(frozen=True, slots=True)
class ClassDescriptor:
    """What this system announces to the bus about one class."""

    name: str
    identifiers: tuple[str, ...]
    elements: tuple[tuple[str, str], ...]
    matchable: bool = True


@dataclass(slots=True, kw_only=True)
class BindingRegistry:
    """All classes served by one connector.

    Reference attributes are resolved against a locally registered class when
    there is one and through the bus otherwise.
    """

    system_id: str
    unit_of_work_factory: BindingUnitOfWorkFactory
    bus: BusConnector | None = None
    hash_algorithm: str = DEFAULT_ALGORITHM
    register_unknown: bool = True
    _services: dict[str, BindingService] = field(default_factory=dict[str, BindingService])

    def register(self, accessor: DatasetAccessor) -> BindingService:
        context = BindingContext.build(
            accessor=accessor,
            unit_of_work_factory=self.unit_of_work_factory,
            system_id=self.system_id,
            bus=self.bus,
            hash_algorithm=self.hash_algorithm,
            register_unknown=self.register_unknown,
        )
        service = BindingService(context, reference_resolver=self.resolve_reference)
        self._services[service.class_name] = service
        log.info(
            "Registered class %s with identifiers %s",
            service.class_name,
            ", ".join(context.identifiers.exposed),
        )
        return service

    def service(self, class_name: str) -> BindingService:
        try:
            return self._services[class_name]
        except KeyError:
            raise UnknownClassError(class_name) from None

    @property
    def class_names(self) -> tuple[str, ...]:
        return tuple(self._services)

    def schema(self) -> list[ClassDescriptor]:
        descriptors: list[ClassDescriptor] = []
        for service in self._services.values():
            context = service.context
            descriptors.append(
                ClassDescriptor(
                    name=service.class_name,
                    identifiers=context.identifiers.exposed,
                    elements=tuple(
                        (attribute.path, attribute.description)
                        for attribute in context.schema.attributes
                    ),
                )
            )
        return descriptors

    def resolve_reference(
        self,
        transaction_id: str,
        class_name: str,
        identifier_name: str,
        identifier_value: str,
    ) -> UuidResolution:
        local = self._services.get(class_name)
        if local is not None:
            return local.resolve_uuid(
                transaction_id, identifier_name, identifier_value, register=False
            )
        return unify_via_bus(
            self.bus, transaction_id, class_name, identifier_name, identifier_value
        )

    def uuid_by_identifier(
        self,
        transaction_id: str,
        class_name: str,
        identifier_name: str,
        identifier_value: str,
        *,
        from_bus: bool = False,
    ) -> UuidResolution:
        """Resolve an identifier; ``from_bus`` marks a request a peer sent us."""

        service = self.service(class_name)
        if from_bus and self.bus is not None:
            self.bus.record_incoming(transaction_id, class_name)
        return service.resolve_uuid(
            transaction_id, identifier_name, identifier_value
        )

    def identifier_by_uuid(
        self,
        class_name: str,
        identifier_name: str,
        uuid: UUID,
    ) -> IdentifierResolution:
        return self.service(class_name).resolve_identifier(identifier_name, uuid)

    def check_identifier(
        self,
        transaction_id: str,
        class_name: str,
        identifier_name: str,
        identifier_value: str,
    ) -> bool:
        return self.service(class_name).check_identifier(
            transaction_id, identifier_name, identifier_value
        )

    def is_modified(self, class_name: str, uuid: UUID) -> ModificationCheck:
        return self.service(class_name).is_modified(uuid)

    def match(
        self,
        transaction_id: str,
        class_name: str,
        filters: Mapping[str, str] | None = None,
    ) -> MatchResult:
        return self.service(class_name).match(transaction_id, filters)

    def get(self, class_name: str, request: GetRequest) -> GetResult:
        return self.service(class_name).get(request)

    def update(self, class_name: str, request: UpdateRequest) -> UpdateResult:
        return self.service(class_name).update(request)
