"""Identifier <-> canonical UUID resolution.

``resolve_uuid`` walks a fixed chain and stops at the first step that yields a
UUID:

1. bound: an enabled binding already exists for the identifier
2. alias: the identifier's dataset row carries another identifier that is bound
3. bus: a peer system resolves one of the row's global identifiers
4. registered: a fresh UUID is minted for a first-seen object

Only the final binding write is terminal. Store and transport failures inside
the alias and bus steps are logged and the chain moves on.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import uuid4

from bindery.domain.errors import HashError, StoreError, TransportError
from bindery.domain.model import identifier_key, identifier_name, is_identifier_key

from .contracts import (
    FailureKind,
    IdentifierFound,
    ModificationCheck,
    ResolutionPath,
    Resolved,
    Unresolved,
)
from .hashing import content_hash
from .transform import row_value, transform_all

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from bindery.domain.model import Binding, Row

    from .context import BindingContext
    from .contracts import IdentifierResolution, UuidResolution

log = logging.getLogger(__name__)


def resolve_uuid(
    context: BindingContext,
    transaction_id: str,
    identifier_name: str,
    identifier_value: str,
    *,
    register: bool | None = None,
    dataset: Sequence[Row] | None = None,
) -> UuidResolution:
    """Translate a local identifier into its canonical UUID.

    ``dataset`` may carry already transformed rows when the caller has scanned
    the class anyway. ``register`` overrides the context's policy on minting
    UUIDs for objects nobody knows yet.
    """

    name = context.identifiers.local_name(identifier_name)
    try:
        existing = _find_binding(context, name, identifier_value)
    except StoreError as exc:
        log.warning(
            "Binding lookup failed for %s %s=%s: %s",
            context.class_name,
            name,
            identifier_value,
            exc,
        )
        return Unresolved(kind=FailureKind.STORE_ERROR, reason=str(exc))
    if existing is not None:
        log.debug("Bound: %s %s=%s -> %s", context.class_name, name, identifier_value, existing.uuid)
        return Resolved(uuid=existing.uuid, path=ResolutionPath.BOUND)

    try:
        rows = dataset if dataset is not None else _transformed_dataset(context, transaction_id)
    except StoreError as exc:
        log.warning("Dataset scan failed for %s: %s", context.class_name, exc)
        return Unresolved(kind=FailureKind.STORE_ERROR, reason=str(exc))
    row = find_row(rows, name, identifier_value)
    if row is None:
        log.info("No %s row with %s=%s", context.class_name, name, identifier_value)
        return Unresolved(kind=FailureKind.NOT_FOUND, reason="no_matching_row")

    adopted = _adopt_from_aliases(context, row, name)
    path = ResolutionPath.ALIAS
    if adopted is None and _may_ask_bus(context, transaction_id):
        adopted = _adopt_from_bus(context, transaction_id, row)
        path = ResolutionPath.BUS
    if adopted is None:
        should_register = context.register_unknown if register is None else register
        if not should_register:
            return Unresolved(kind=FailureKind.NOT_FOUND, reason="not_registered")
        adopted = uuid4()
        path = ResolutionPath.REGISTERED
        log.info("Registering new %s %s=%s as %s", context.class_name, name, identifier_value, adopted)

    try:
        binding = _write_binding(context, adopted, name, identifier_value)
    except StoreError as exc:
        log.exception("Could not bind %s %s=%s", context.class_name, name, identifier_value)
        return Unresolved(kind=FailureKind.STORE_ERROR, reason=str(exc))
    if binding.uuid != adopted:
        log.info(
            "Concurrent binding for %s %s=%s won, using %s",
            context.class_name,
            name,
            identifier_value,
            binding.uuid,
        )
        return Resolved(uuid=binding.uuid, path=ResolutionPath.BOUND)
    return Resolved(uuid=binding.uuid, path=path)


def resolve_identifier(
    context: BindingContext,
    identifier_name: str,
    uuid: UUID,
) -> IdentifierResolution:
    """Translate a UUID back to a local identifier. No fallback search."""

    name = context.identifiers.local_name(identifier_name)
    try:
        with context.unit_of_work() as uow:
            binding = uow.repositories.bindings.find_by_uuid(uuid, name)
    except StoreError as exc:
        log.warning("Reverse lookup failed for %s %s: %s", context.class_name, uuid, exc)
        return Unresolved(kind=FailureKind.STORE_ERROR, reason=str(exc))
    if binding is None:
        return Unresolved(kind=FailureKind.NOT_FOUND, reason="unbound_uuid")
    return IdentifierFound(identifier_name=binding.identifier_name, value=binding.identifier_value)


def is_modified(context: BindingContext, uuid: UUID) -> ModificationCheck:
    """Compare the raw row's current hash with the one cached at the last get.

    Anything that prevents a comparison counts as modified.
    """

    primary = context.identifiers.primary
    identifier = resolve_identifier(context, primary, uuid)
    if isinstance(identifier, Unresolved):
        return ModificationCheck(modified=True, reason=f"identifier_{identifier.kind}")

    row = context.accessor.fetch_row(primary, identifier.value, False)  # noqa: FBT003
    if row is None:
        return ModificationCheck(modified=True, reason="row_missing")
    try:
        actual = content_hash(row, context.schema, algorithm=context.hash_algorithm)
    except HashError as exc:
        log.warning("Assuming %s %s modified: %s", context.class_name, uuid, exc)
        return ModificationCheck(modified=True, reason=FailureKind.HASH_ERROR)

    try:
        with context.unit_of_work() as uow:
            stored = uow.repositories.bindings.find_hash(uuid)
    except StoreError as exc:
        log.warning("Assuming %s %s modified: %s", context.class_name, uuid, exc)
        return ModificationCheck(modified=True, reason=FailureKind.STORE_ERROR)
    if not stored:
        return ModificationCheck(modified=True, reason="no_stored_hash")
    if stored.casefold() != actual.casefold():
        return ModificationCheck(modified=True, reason="hash_changed")
    return ModificationCheck(modified=False, reason="unchanged")


def find_row(rows: Sequence[Row], identifier_name: str, identifier_value: str) -> Row | None:
    key = identifier_key(identifier_name)
    wanted = identifier_value.casefold()
    for row in rows:
        value = row_value(row, key)
        if value is not None and value.casefold() == wanted:
            return row
    return None


def _transformed_dataset(context: BindingContext, transaction_id: str) -> list[Row]:
    rows = context.accessor.fetch_dataset(transaction_id, context.class_name)
    return transform_all(rows, context.schema)


def _find_binding(context: BindingContext, name: str, value: str) -> Binding | None:
    with context.unit_of_work() as uow:
        return uow.repositories.bindings.find_by_identifier(name, value)


def _write_binding(context: BindingContext, uuid: UUID, name: str, value: str) -> Binding:
    with context.unit_of_work() as uow:
        binding = uow.repositories.bindings.add(uuid, name, value)
        uow.commit()
        return binding


def _adopt_from_aliases(context: BindingContext, row: Row, name: str) -> UUID | None:
    for key, value in row.items():
        if not is_identifier_key(key) or not value:
            continue
        field = context.schema.field_for_key(key)
        alias = field.id if field is not None else identifier_name(key)
        if alias.casefold() == name.casefold():
            continue
        log.debug("Comparing with alias %s=%s", alias, value)
        try:
            binding = _find_binding(context, alias, value)
        except StoreError as exc:
            log.warning("Alias lookup %s=%s failed: %s", alias, value, exc)
            continue
        if binding is not None:
            log.info("Adopting %s from alias %s=%s", binding.uuid, alias, value)
            return binding.uuid
    return None


def _may_ask_bus(context: BindingContext, transaction_id: str) -> bool:
    if context.bus is None or not context.identifiers.global_names:
        return False
    try:
        is_self = context.bus.is_self_request(transaction_id, context.class_name)
    except TransportError as exc:
        # unknown origin: skipping the bus is the only loop-safe choice
        log.warning("Could not determine request origin for %s: %s", transaction_id, exc)
        return False
    return not is_self


def _adopt_from_bus(context: BindingContext, transaction_id: str, row: Row) -> UUID | None:
    bus = context.bus
    if bus is None:
        return None
    for name in context.identifiers.global_names:
        value = row_value(row, identifier_key(name))
        if not value:
            continue
        log.info("Asking bus for %s %s=%s", context.class_name, name, value)
        try:
            uuid = bus.unify(transaction_id, context.class_name, name, value, False)  # noqa: FBT003
        except TransportError as exc:
            log.warning("Bus lookup %s=%s failed: %s", name, value, exc)
            continue
        if uuid is not None:
            log.info("Found in global scope: %s", uuid)
            return uuid
    return None
