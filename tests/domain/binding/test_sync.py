from __future__ import annotations

from uuid import UUID, uuid4

from bindery.domain.binding.contracts import (
    FailureKind,
    IdentifierFound,
    ResolutionPath,
    Resolved,
    Unresolved,
    UpdateAction,
)
from bindery.domain.binding.hashing import content_hash
from bindery.domain.binding.resolve import is_modified, resolve_identifier
from bindery.domain.binding.sync import get, match, update
from bindery.domain.model import Binding, GetRequest, UpdateRequest
from tests.helpers.bindings import (
    TRANSACTION_ID,
    FakeAccessor,
    FakeBindingRepository,
    employee_row,
    employee_schema,
    make_context,
)

KNOWN = UUID("5d1f6f0e-8d6c-4c53-9a4e-7d0f3b8f2a11")
OTHER = UUID("3f8a1c27-6b0d-4e94-9d2e-55c1a7b3e810")
SITE = UUID("9c3c0f9e-2b7e-4f59-8a44-1f5a2a6d7e42")


def _no_references(*_: str) -> Unresolved:
    return Unresolved(kind=FailureKind.NOT_FOUND, reason="no_bus")


class _ClaimedRepository(FakeBindingRepository):
    """Every identifier is claimed by ``OTHER`` again as soon as it is disabled."""

    def add(
        self,
        uuid: UUID,
        identifier_name: str,
        identifier_value: str,
        content_hash: str | None = None,
    ) -> Binding:
        _ = (uuid, content_hash)
        return self.bind(OTHER, identifier_name, identifier_value)


def test_match_returns_distinct_uuids_in_dataset_order() -> None:
    accessor = FakeAccessor(
        employee_schema(),
        [
            employee_row("E1", "ada@example.org"),
            employee_row("E2", "bob@example.org"),
            employee_row("E1", "ada@example.org"),
        ],
    )
    context, repo = make_context(accessor)
    repo.bind(KNOWN, "empId", "E2")

    result = match(context, TRANSACTION_ID)

    assert len(result.uuids) == 2
    assert result.uuids[1] == KNOWN
    assert result.uuids[0] == repo.uuids_for("empId")["E1"]
    assert result.failures == {}
    assert len(accessor.dataset_calls) == 1


def test_match_passes_filters_and_counts_rows_without_identifier() -> None:
    accessor = FakeAccessor(
        employee_schema(),
        [employee_row("E1", dept="Sales"), employee_row(None, dept="Sales")],
    )
    context, _ = make_context(accessor)

    result = match(context, TRANSACTION_ID, {"dept": "Sales"})

    assert accessor.dataset_calls == [{"dept": "Sales"}]
    assert len(result.uuids) == 1
    assert result.skipped == 1


def test_match_records_failures_per_identifier() -> None:
    accessor = FakeAccessor(employee_schema(), [employee_row("E1")])
    context, _ = make_context(accessor, register_unknown=False)

    result = match(context, TRANSACTION_ID)

    assert result.uuids == []
    assert result.failures["E1"].kind is FailureKind.NOT_FOUND


def test_get_fills_transformed_attributes_and_confirms() -> None:
    schema = employee_schema()
    raw = employee_row(site="S1")
    accessor = FakeAccessor(schema, [raw])
    context, repo = make_context(accessor)
    repo.bind(KNOWN, "empId", "E1")
    calls: list[tuple[str, str, str, str]] = []

    def resolve_reference(tx: str, class_name: str, name: str, value: str) -> Resolved:
        calls.append((tx, class_name, name, value))
        return Resolved(uuid=SITE, path=ResolutionPath.BUS)

    request = GetRequest(transaction_id=TRANSACTION_ID, uuid=KNOWN)
    result = get(context, request, resolve_reference=resolve_reference)

    assert result.succeeded is True
    assert result.found is True
    assert result.confirmed is True
    assert request.values["dept"] == "Human Resources"
    assert request.values["name"] == "Ada"
    assert request.values["site"] == str(SITE)
    assert request.values["manager"] is None
    assert "#empId" not in request.values
    assert calls == [(TRANSACTION_ID, "Site", "code", "S1")]
    assert repo.find_hash(KNOWN) == content_hash(raw, schema)


def test_get_then_is_modified_reports_unchanged_until_row_changes() -> None:
    accessor = FakeAccessor(employee_schema(), [employee_row()])
    context, repo = make_context(accessor)
    repo.bind(KNOWN, "empId", "E1")

    assert is_modified(context, KNOWN).modified is True

    get(
        context,
        GetRequest(transaction_id=TRANSACTION_ID, uuid=KNOWN),
        resolve_reference=_no_references,
    )
    assert is_modified(context, KNOWN).modified is False

    accessor.rows[0]["dept"] = "Sales"
    assert is_modified(context, KNOWN).modified is True


def test_get_unresolved_reference_is_reported_as_none() -> None:
    accessor = FakeAccessor(employee_schema(), [employee_row(site="S1")])
    context, repo = make_context(accessor)
    repo.bind(KNOWN, "empId", "E1")

    request = GetRequest(transaction_id=TRANSACTION_ID, uuid=KNOWN)
    result = get(context, request, resolve_reference=_no_references)

    assert result.succeeded is True
    assert request.values["site"] is None


def test_get_unbound_uuid_succeeds_with_nothing_found() -> None:
    accessor = FakeAccessor(employee_schema(), [employee_row()])
    context, _ = make_context(accessor)

    request = GetRequest(transaction_id=TRANSACTION_ID, uuid=KNOWN)
    result = get(context, request, resolve_reference=_no_references)

    assert result.succeeded is True
    assert result.found is False
    assert request.values == {}
    assert accessor.row_calls == []


def test_get_vanished_row_succeeds_with_nothing_found() -> None:
    context, repo = make_context(FakeAccessor(employee_schema(), []))
    repo.bind(KNOWN, "empId", "E1")

    result = get(
        context,
        GetRequest(transaction_id=TRANSACTION_ID, uuid=KNOWN),
        resolve_reference=_no_references,
    )

    assert result.succeeded is True
    assert result.found is False


def test_get_store_failure_on_lookup_fails() -> None:
    repo = FakeBindingRepository(failing={"find_by_uuid"})
    context, _ = make_context(FakeAccessor(employee_schema(), [employee_row()]), repo)

    result = get(
        context,
        GetRequest(transaction_id=TRANSACTION_ID, uuid=KNOWN),
        resolve_reference=_no_references,
    )

    assert result.succeeded is False
    assert result.failure is not None
    assert result.failure.kind is FailureKind.STORE_ERROR


def test_get_store_failure_on_confirm_still_returns_values() -> None:
    repo = FakeBindingRepository(failing={"confirm_seen"})
    repo.bind(KNOWN, "empId", "E1")
    context, _ = make_context(FakeAccessor(employee_schema(), [employee_row()]), repo)

    request = GetRequest(transaction_id=TRANSACTION_ID, uuid=KNOWN)
    result = get(context, request, resolve_reference=_no_references)

    assert result.succeeded is True
    assert result.confirmed is False
    assert request.values["name"] == "Ada"


def test_update_bound_object_updates_backend_record() -> None:
    accessor = FakeAccessor(employee_schema(), [employee_row()])
    context, repo = make_context(accessor)
    repo.bind(KNOWN, "empId", "E1")

    result = update(
        context,
        UpdateRequest(transaction_id=TRANSACTION_ID, uuid=KNOWN, values={"name": "Ada L."}),
    )

    assert result.succeeded is True
    assert result.action is UpdateAction.UPDATED
    assert accessor.updated == [("empId", "E1", {"name": "Ada L."})]
    assert accessor.inserted == []


def test_update_matches_existing_row_by_shared_identifiers() -> None:
    accessor = FakeAccessor(employee_schema(), [employee_row("E7", "eve@example.org")])
    context, repo = make_context(accessor)
    payload = {"#email": " EVE@example.org ", "name": "Eve"}

    result = update(
        context,
        UpdateRequest(transaction_id=TRANSACTION_ID, uuid=KNOWN, values=payload),
    )

    assert result.succeeded is True
    assert result.action is UpdateAction.MATCHED
    assert repo.uuids_for("empId") == {"E7": KNOWN}
    assert repo.uuids_for("email") == {"eve@example.org": KNOWN}
    assert repo.find_hash(KNOWN) is not None
    assert accessor.updated[0][:2] == ("empId", "E7")
    assert accessor.inserted == []


def test_update_match_supersedes_binding_to_other_uuid() -> None:
    accessor = FakeAccessor(employee_schema(), [employee_row("E7", "eve@example.org")])
    context, repo = make_context(accessor)
    repo.bind(OTHER, "empId", "E7")

    result = update(
        context,
        UpdateRequest(transaction_id=TRANSACTION_ID, uuid=KNOWN, values={"#empId": "E7"}),
    )

    assert result.succeeded is True
    assert result.action is UpdateAction.MATCHED
    assert repo.uuids_for("empId") == {"E7": KNOWN}
    assert [(b.uuid, b.identifier_value) for b in repo.items if b.disabled] == [(OTHER, "E7")]
    found = resolve_identifier(context, "empId", KNOWN)
    assert found == IdentifierFound(identifier_name="empId", value="E7")


def test_update_match_fails_when_identifier_stays_claimed() -> None:
    accessor = FakeAccessor(employee_schema(), [employee_row("E7", "eve@example.org")])
    context, _ = make_context(accessor, _ClaimedRepository())

    result = update(
        context,
        UpdateRequest(transaction_id=TRANSACTION_ID, uuid=KNOWN, values={"#empId": "E7"}),
    )

    assert result.succeeded is False
    assert result.action is UpdateAction.MATCHED
    assert result.reason == "bound_to_other_uuid"
    assert accessor.updated == []


def test_update_conflicting_identifier_does_not_match() -> None:
    accessor = FakeAccessor(employee_schema(), [employee_row("E7", "eve@example.org")])
    context, _ = make_context(accessor)
    payload = {"#empId": "E8", "#email": "eve@example.org", "name": "Eve"}

    result = update(
        context,
        UpdateRequest(transaction_id=TRANSACTION_ID, uuid=KNOWN, values=payload),
    )

    assert result.action is UpdateAction.INSERTED
    assert accessor.inserted == [payload]


def test_update_with_unknown_identifier_inserts() -> None:
    accessor = FakeAccessor(employee_schema(), [employee_row("E7")])
    context, _ = make_context(accessor)

    result = update(
        context,
        UpdateRequest(
            transaction_id=TRANSACTION_ID,
            uuid=KNOWN,
            values={"#empId": "E9", "name": "Zed"},
        ),
    )

    assert result.action is UpdateAction.INSERTED
    assert accessor.updated == []


def test_update_without_identifiers_never_matches_by_accident() -> None:
    accessor = FakeAccessor(employee_schema(), [employee_row("E7")])
    context, repo = make_context(accessor)

    result = update(
        context,
        UpdateRequest(transaction_id=TRANSACTION_ID, uuid=KNOWN, values={"name": "Zed"}),
    )

    assert result.action is UpdateAction.INSERTED
    assert result.reason == "insert_failed"
    assert accessor.updated == []
    assert repo.items == []


def test_update_inserts_and_binds_returned_keys() -> None:
    accessor = FakeAccessor(employee_schema(), [])
    context, repo = make_context(accessor)
    payload = {"#empId": "E3", "#email": "cy@example.org", "name": "Cy"}

    result = update(
        context,
        UpdateRequest(transaction_id=TRANSACTION_ID, uuid=KNOWN, values=payload),
    )

    assert result.succeeded is True
    assert result.action is UpdateAction.INSERTED
    assert repo.uuids_for("empId") == {"E3": KNOWN}
    assert repo.uuids_for("email") == {"cy@example.org": KNOWN}


def test_update_insert_supersedes_stale_binding_of_reused_key() -> None:
    accessor = FakeAccessor(employee_schema(), [])
    context, repo = make_context(accessor)
    repo.bind(OTHER, "empId", "E3")

    result = update(
        context,
        UpdateRequest(transaction_id=TRANSACTION_ID, uuid=KNOWN, values={"#empId": "E3"}),
    )

    assert result.succeeded is True
    assert result.action is UpdateAction.INSERTED
    assert repo.uuids_for("empId") == {"E3": KNOWN}
    assert [b.uuid for b in repo.items if b.disabled] == [OTHER]


def test_update_insert_fails_when_returned_key_stays_claimed() -> None:
    accessor = FakeAccessor(employee_schema(), [])
    context, _ = make_context(accessor, _ClaimedRepository())

    result = update(
        context,
        UpdateRequest(transaction_id=TRANSACTION_ID, uuid=KNOWN, values={"#empId": "E3"}),
    )

    assert result.succeeded is False
    assert result.action is UpdateAction.INSERTED
    assert result.reason == "bound_to_other_uuid"


def test_update_insert_without_keys_fails() -> None:
    accessor = FakeAccessor(employee_schema(), [], accept_inserts=False)
    context, repo = make_context(accessor)

    result = update(
        context,
        UpdateRequest(transaction_id=TRANSACTION_ID, uuid=KNOWN, values={"name": "Cy"}),
    )

    assert result.succeeded is False
    assert result.reason == "insert_failed"
    assert repo.items == []


def test_update_rebinds_object_that_vanished_from_backend() -> None:
    accessor = FakeAccessor(employee_schema(), [])
    context, repo = make_context(accessor)
    repo.bind(KNOWN, "empId", "E1")

    result = update(
        context,
        UpdateRequest(
            transaction_id=TRANSACTION_ID,
            uuid=KNOWN,
            values={"#empId": "E5", "name": "Ada"},
        ),
    )

    assert result.succeeded is True
    assert result.action is UpdateAction.REBOUND
    assert repo.uuids_for("empId") == {"E5": KNOWN}
    assert [b.identifier_value for b in repo.items if b.disabled] == ["E1"]


def test_update_store_failure_is_reported() -> None:
    repo = FakeBindingRepository(failing={"find_by_uuid"})
    context, _ = make_context(FakeAccessor(employee_schema(), []), repo)

    result = update(
        context,
        UpdateRequest(transaction_id=TRANSACTION_ID, uuid=uuid4(), values={"name": "x"}),
    )

    assert not result
    assert result.reason is not None
    assert result.reason.startswith(FailureKind.STORE_ERROR)
