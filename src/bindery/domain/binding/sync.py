"""Dataset-level operations built on the resolution chain."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bindery.domain.errors import HashError, StoreError
from bindery.domain.model import identifier_key, identifier_name, is_identifier_key

from .contracts import (
    FailureKind,
    GetResult,
    MatchResult,
    Resolved,
    Unresolved,
    UpdateAction,
    UpdateResult,
)
from .hashing import content_hash
from .resolve import resolve_identifier, resolve_uuid
from .transform import row_value, transform, transform_all

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from bindery.domain.model import GetRequest, Row, UpdateRequest
    from bindery.domain.ports import BindingRepository

    from .context import BindingContext
    from .contracts import ReferenceResolver

log = logging.getLogger(__name__)


def match(
    context: BindingContext,
    transaction_id: str,
    filters: Mapping[str, str] | None = None,
) -> MatchResult:
    """Resolve the primary identifier of every dataset row.

    ``filters`` are handed to the accessor, which narrows the dataset.
    """

    primary = context.identifiers.primary
    rows = transform_all(
        context.accessor.fetch_dataset(transaction_id, context.class_name, filters),
        context.schema,
    )
    log.info("Matching %d %s rows on %s", len(rows), context.class_name, primary)

    result = MatchResult()
    seen: set[UUID] = set()
    for row in rows:
        value = row_value(row, identifier_key(primary))
        if not value:
            result.skipped += 1
            continue
        resolution = resolve_uuid(context, transaction_id, primary, value, dataset=rows)
        if isinstance(resolution, Unresolved):
            result.failures[value] = resolution
            continue
        if resolution.uuid not in seen:
            seen.add(resolution.uuid)
            result.uuids.append(resolution.uuid)
    if result.skipped:
        log.warning("Skipped %d %s rows without %s", result.skipped, context.class_name, primary)
    return result


def get(
    context: BindingContext,
    request: GetRequest,
    *,
    resolve_reference: ReferenceResolver,
) -> GetResult:
    """Fill ``request`` with the current attribute values of its object."""

    primary = context.identifiers.primary
    identifier = resolve_identifier(context, primary, request.uuid)
    if isinstance(identifier, Unresolved):
        if identifier.not_found:
            log.info("Nothing to report for unbound %s %s", context.class_name, request.uuid)
            return GetResult(succeeded=True, request=request, failure=identifier)
        return GetResult(succeeded=False, request=request, failure=identifier)
    log.info("Resolved identifier: %s=%s", primary, identifier.value)

    raw = context.accessor.fetch_row(primary, identifier.value, False)  # noqa: FBT003
    if raw is None:
        log.info("%s %s no longer present", context.class_name, request.uuid)
        return GetResult(succeeded=True, request=request)
    row = transform(raw, context.schema)

    confirmed = _confirm_seen(context, request.uuid, raw)
    for key, value in row.items():
        if is_identifier_key(key):
            continue
        field = context.schema.field_for_key(key)
        if field is None or field.reference is None:
            request.put(key, value)
            continue
        if not value:
            request.put(key, None)
            continue
        reference = resolve_reference(
            request.transaction_id,
            field.reference.target_class,
            field.reference.target_field,
            value,
        )
        if isinstance(reference, Resolved):
            request.put(key, str(reference.uuid))
        else:
            log.warning(
                "Unresolved reference %s -> %s.%s=%s (%s)",
                key,
                field.reference.target_class,
                field.reference.target_field,
                value,
                reference.kind,
            )
            request.put(key, None)
    return GetResult(succeeded=True, request=request, found=True, confirmed=confirmed)


def update(context: BindingContext, request: UpdateRequest) -> UpdateResult:
    """Persist ``request`` into the backend and keep bindings in step.

    Tried in order: the object is already bound, a dataset row carries the
    same identifiers, or a new record is inserted. Storage failures are
    logged and reported as an unsuccessful result.
    """

    try:
        return _update(context, request)
    except StoreError as exc:
        log.exception("Update of %s %s failed", context.class_name, request.uuid)
        return UpdateResult(succeeded=False, reason=f"{FailureKind.STORE_ERROR}: {exc}")


def _update(context: BindingContext, request: UpdateRequest) -> UpdateResult:
    class_name = context.class_name
    with context.unit_of_work() as uow:
        bindings = uow.repositories.bindings
        bound = bindings.find_by_uuid(
            request.uuid, context.identifiers.primary
        ) or bindings.find_by_uuid(request.uuid)

    if bound is not None:
        exists = context.accessor.identifier_exists(
            request.transaction_id,
            class_name,
            bound.identifier_name,
            bound.identifier_value,
        )
        if exists:
            updated = context.accessor.update_record(
                class_name,
                bound.identifier_name,
                bound.identifier_value,
                request.values,
            )
            return UpdateResult(
                succeeded=updated,
                action=UpdateAction.UPDATED,
                reason=None if updated else "update_rejected",
            )
        log.info(
            "%s %s=%s vanished from backend, re-inserting",
            class_name,
            bound.identifier_name,
            bound.identifier_value,
        )
        return _insert(context, request, action=UpdateAction.REBOUND)

    wanted = _payload_identifiers(context, request)
    if wanted:
        raw_rows = context.accessor.fetch_dataset(request.transaction_id, class_name)
        for raw in raw_rows:
            row = transform(raw, context.schema)
            if _matches_identifiers(row, wanted):
                return _bind_matched_row(context, request, raw, row)

    return _insert(context, request, action=UpdateAction.INSERTED)


def _bind_matched_row(
    context: BindingContext,
    request: UpdateRequest,
    raw: Row,
    row: Row,
) -> UpdateResult:
    content = _hash_or_none(context, raw)
    aliases = [
        (name, value)
        for name in context.identifiers.names
        if (value := row_value(row, identifier_key(name)))
    ]
    if not aliases:
        return UpdateResult(succeeded=False, action=UpdateAction.MATCHED, reason="no_identifiers")
    with context.unit_of_work() as uow:
        bindings = uow.repositories.bindings
        for name, value in aliases:
            if not _bind(context, bindings, request.uuid, name, value, content):
                uow.rollback()
                return UpdateResult(
                    succeeded=False, action=UpdateAction.MATCHED, reason="bound_to_other_uuid"
                )
        uow.commit()
    log.info("Bound %s to existing %s row %s", request.uuid, context.class_name, aliases)

    name, value = aliases[0]
    updated = context.accessor.update_record(context.class_name, name, value, request.values)
    return UpdateResult(
        succeeded=updated,
        action=UpdateAction.MATCHED,
        reason=None if updated else "update_rejected",
    )


def _insert(
    context: BindingContext,
    request: UpdateRequest,
    *,
    action: UpdateAction,
) -> UpdateResult:
    keys = context.accessor.insert_record(context.class_name, request.values)
    if not keys:
        log.error("Insert of %s %s returned no keys", context.class_name, request.uuid)
        return UpdateResult(succeeded=False, action=action, reason="insert_failed")

    with context.unit_of_work() as uow:
        bindings = uow.repositories.bindings
        for raw_name, value in keys.items():
            name = context.identifiers.local_name(identifier_name(raw_name))
            if action is UpdateAction.REBOUND:
                previous = bindings.find_by_uuid(request.uuid, name)
                if previous is not None and previous.identifier_value != value:
                    bindings.disable(previous.identifier_name, previous.identifier_value)
            if not _bind(context, bindings, request.uuid, name, value):
                uow.rollback()
                return UpdateResult(succeeded=False, action=action, reason="bound_to_other_uuid")
        uow.commit()
    log.info("Registered %s %s with keys %s", context.class_name, request.uuid, dict(keys))
    return UpdateResult(succeeded=True, action=action)


def _bind(
    context: BindingContext,
    bindings: BindingRepository,
    uuid: UUID,
    name: str,
    value: str,
    content: str | None = None,
) -> bool:
    """Bind ``name=value`` to ``uuid``, superseding an enabled binding to another UUID.

    Returns False when a concurrent writer claims the identifier again.
    """

    binding = bindings.add(uuid, name, value, content)
    if binding.uuid == uuid:
        return True
    log.warning(
        "Rebinding %s %s=%s from %s to %s",
        context.class_name,
        name,
        value,
        binding.uuid,
        uuid,
    )
    bindings.disable(name, value)
    winner = bindings.add(uuid, name, value, content)
    if winner.uuid != uuid:
        log.error("%s %s=%s claimed by %s meanwhile", context.class_name, name, value, winner.uuid)
        return False
    return True


def _payload_identifiers(context: BindingContext, request: UpdateRequest) -> dict[str, str]:
    wanted: dict[str, str] = {}
    for key, value in request.identifier_values().items():
        if value is None or not value.strip():
            continue
        name = context.identifiers.local_name(identifier_name(key))
        wanted[identifier_key(name)] = value
    return wanted


def _matches_identifiers(row: Row, wanted: Mapping[str, str]) -> bool:
    """Every identifier the row and payload share must agree, and at least one must be shared."""

    shared = 0
    for key, expected in wanted.items():
        actual = row_value(row, key)
        if actual is None:
            continue
        if actual.strip().casefold() != expected.strip().casefold():
            return False
        shared += 1
    return shared > 0


def _hash_or_none(context: BindingContext, raw: Row) -> str | None:
    try:
        return content_hash(raw, context.schema, algorithm=context.hash_algorithm)
    except HashError as exc:
        log.warning("No content hash for %s: %s", context.class_name, exc)
        return None


def _confirm_seen(context: BindingContext, uuid: UUID, raw: Row) -> bool:
    content = _hash_or_none(context, raw)
    try:
        with context.unit_of_work() as uow:
            uow.repositories.bindings.confirm_seen(uuid, content)
            uow.commit()
    except StoreError as exc:
        log.warning("Could not confirm %s %s: %s", context.class_name, uuid, exc)
        return False
    return True
