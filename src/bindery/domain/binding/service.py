"""Per-class facade over the resolution and sync operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bindery.domain.errors import TransportError

from . import resolve, sync
from .contracts import FailureKind, ResolutionPath, Resolved, Unresolved

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from bindery.domain.model import GetRequest, UpdateRequest
    from bindery.domain.ports import BusConnector

    from .context import BindingContext
    from .contracts import (
        GetResult,
        IdentifierResolution,
        MatchResult,
        ModificationCheck,
        ReferenceResolver,
        UpdateResult,
        UuidResolution,
    )

log = logging.getLogger(__name__)


@dataclass(slots=True)
class BindingService:
    """Binding engine for the single class served by ``context.accessor``.

    ``reference_resolver`` resolves attributes pointing at other classes; when
    absent, references into this class resolve locally and anything else goes
    through the bus.
    """

    context: BindingContext
    reference_resolver: ReferenceResolver | None = None

    @property
    def class_name(self) -> str:
        return self.context.class_name

    def resolve_uuid(
        self,
        transaction_id: str,
        identifier_name: str,
        identifier_value: str,
        *,
        register: bool | None = None,
    ) -> UuidResolution:
        return resolve.resolve_uuid(
            self.context,
            transaction_id,
            identifier_name,
            identifier_value,
            register=register,
        )

    def resolve_identifier(self, identifier_name: str, uuid: UUID) -> IdentifierResolution:
        return resolve.resolve_identifier(self.context, identifier_name, uuid)

    def is_modified(self, uuid: UUID) -> ModificationCheck:
        return resolve.is_modified(self.context, uuid)

    def match(self, transaction_id: str, filters: Mapping[str, str] | None = None) -> MatchResult:
        return sync.match(self.context, transaction_id, filters)

    def get(self, request: GetRequest) -> GetResult:
        return sync.get(
            self.context,
            request,
            resolve_reference=self.reference_resolver or self._resolve_reference,
        )

    def update(self, request: UpdateRequest) -> UpdateResult:
        return sync.update(self.context, request)

    def check_identifier(
        self,
        transaction_id: str,
        identifier_name: str,
        identifier_value: str,
    ) -> bool:
        return self.context.accessor.identifier_exists(
            transaction_id,
            self.class_name,
            self.context.identifiers.local_name(identifier_name),
            identifier_value,
        )

    def _resolve_reference(
        self,
        transaction_id: str,
        class_name: str,
        identifier_name: str,
        identifier_value: str,
    ) -> UuidResolution:
        if class_name == self.class_name:
            return self.resolve_uuid(
                transaction_id, identifier_name, identifier_value, register=False
            )
        return unify_via_bus(
            self.context.bus, transaction_id, class_name, identifier_name, identifier_value
        )


def unify_via_bus(
    bus: BusConnector | None,
    transaction_id: str,
    class_name: str,
    identifier_name: str,
    identifier_value: str,
) -> UuidResolution:
    """Ask the bus for a foreign class's UUID, as a typed result."""

    if bus is None:
        return Unresolved(kind=FailureKind.NOT_FOUND, reason="no_bus")
    try:
        uuid = bus.unify(
            transaction_id,
            class_name,
            identifier_name,
            identifier_value,
            False,  # noqa: FBT003
        )
    except TransportError as exc:
        log.warning(
            "Error when resolving %s.%s=%s: %s",
            class_name,
            identifier_name,
            identifier_value,
            exc,
        )
        return Unresolved(kind=FailureKind.TRANSPORT_ERROR, reason=str(exc))
    if uuid is None:
        return Unresolved(kind=FailureKind.NOT_FOUND, reason="unknown_to_bus")
    return Resolved(uuid=uuid, path=ResolutionPath.BUS)
