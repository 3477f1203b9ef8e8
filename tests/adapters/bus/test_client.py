from __future__ import annotations

from collections.abc import Callable  # noqa: TC003
from concurrent.futures import ThreadPoolExecutor
from uuid import UUID

import httpx
import pytest

from bindery.adapters.bus import HttpBusConnector, UnifyResponse
from bindery.adapters.bus.client import _MAX_TRACKED_REQUESTS  # type: ignore[reportPrivateUsage]
from bindery.adapters.http_resilience import ResilientClient
from bindery.config.http_resilience import ResilienceConfig
from bindery.domain.binding.sync import match
from bindery.domain.errors import TransportError
from tests.helpers.bindings import (
    TRANSACTION_ID,
    FakeAccessor,
    employee_row,
    employee_schema,
    make_context,
)

REMOTE = UUID("0b6e2c44-92b8-4d4e-b2f5-2a3a8e6f9c01")
OTHER_REMOTE = UUID("7a4d2e90-1c3b-4f8e-a6d5-0e9b8c7f6a52")
BASE_URL = "https://bus.example.test"


def _make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(async_handler))  # noqa: SLF001  # type: ignore[reportPrivateUsage]
        return client

    return factory


def _connector(handler: Callable[[httpx.Request], httpx.Response]) -> HttpBusConnector:
    return HttpBusConnector(
        resilience=ResilienceConfig(name="bus", base_url=BASE_URL),
        client_factory=_make_client_factory(handler),
    )


def test_unify_sends_query_and_parses_uuid() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"uuid": str(REMOTE)})

    connector = _connector(handler)

    result = connector.unify("tx-1", "Employee", "email", "ada@example.org", False)  # noqa: FBT003

    assert result == REMOTE
    request = seen[0]
    assert request.url.path == "/unify"
    assert request.url.params["class"] == "Employee"
    assert request.url.params["name"] == "email"
    assert request.url.params["value"] == "ada@example.org"
    assert request.url.params["transaction_id"] == "tx-1"
    assert request.url.params["self_request"] == "false"


def test_unify_returns_none_when_bus_does_not_know() -> None:
    connector = _connector(lambda _request: httpx.Response(200, json={"uuid": None}))

    assert connector.unify("tx-1", "Employee", "email", "x@example.org", False) is None  # noqa: FBT003


def test_unify_http_error_becomes_transport_error() -> None:
    connector = _connector(lambda _request: httpx.Response(500, json={"error": "boom"}))

    with pytest.raises(TransportError):
        connector.unify("tx-1", "Employee", "email", "x@example.org", False)  # noqa: FBT003


def test_unify_timeout_becomes_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    connector = _connector(handler)

    with pytest.raises(TransportError):
        connector.unify("tx-1", "Employee", "email", "x@example.org", False)  # noqa: FBT003


def test_unify_malformed_payload_becomes_transport_error() -> None:
    connector = _connector(lambda _request: httpx.Response(200, json={"uuid": "not-a-uuid"}))

    with pytest.raises(TransportError):
        connector.unify("tx-1", "Employee", "email", "x@example.org", False)  # noqa: FBT003


def test_unify_non_json_body_becomes_transport_error() -> None:
    connector = _connector(lambda _request: httpx.Response(200, text="<html>"))

    with pytest.raises(TransportError):
        connector.unify("tx-1", "Employee", "email", "x@example.org", False)  # noqa: FBT003


def test_incoming_requests_are_recognised_as_self_requests() -> None:
    connector = _connector(lambda _request: httpx.Response(200, json={"uuid": None}))

    connector.unify("tx-1", "Employee", "email", "x@example.org", False)  # noqa: FBT003
    assert not connector.is_self_request("tx-1", "Employee")

    connector.record_incoming("tx-1", "Employee")

    assert connector.is_self_request("tx-1", "Employee")
    assert not connector.is_self_request("tx-1", "Site")
    assert not connector.is_self_request("tx-2", "Employee")


def test_incoming_requests_are_bounded_under_concurrency() -> None:
    connector = _connector(lambda _request: httpx.Response(200, json={"uuid": None}))

    def record(worker: int) -> None:
        for index in range(2000):
            connector.record_incoming(f"tx-{worker}-{index}", "Employee")

    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(record, range(4)))

    assert len(connector._incoming) == _MAX_TRACKED_REQUESTS  # noqa: SLF001  # type: ignore[reportPrivateUsage]
    connector.record_incoming("tx-late", "Employee")
    assert connector.is_self_request("tx-late", "Employee")


def test_match_asks_bus_for_every_unbound_row() -> None:
    peers = {"ada@example.org": REMOTE, "bob@example.org": OTHER_REMOTE}
    asked: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        value = request.url.params["value"]
        asked.append(value)
        return httpx.Response(200, json={"uuid": str(peers[value])})

    connector = _connector(handler)
    accessor = FakeAccessor(
        employee_schema(),
        [employee_row("E1", "ada@example.org"), employee_row("E2", "bob@example.org")],
    )
    context, repo = make_context(accessor, bus=connector)

    result = match(context, TRANSACTION_ID)

    assert asked == ["ada@example.org", "bob@example.org"]
    assert result.uuids == [REMOTE, OTHER_REMOTE]
    assert repo.uuids_for("empId") == {"E1": REMOTE, "E2": OTHER_REMOTE}


def test_match_within_incoming_transaction_stays_local() -> None:
    asked: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        asked.append(request)
        return httpx.Response(200, json={"uuid": str(REMOTE)})

    connector = _connector(handler)
    connector.record_incoming(TRANSACTION_ID, "Employee")
    accessor = FakeAccessor(
        employee_schema(), [employee_row("E1"), employee_row("E2", "bob@example.org")]
    )
    context, _ = make_context(accessor, bus=connector)

    result = match(context, TRANSACTION_ID)

    assert asked == []
    assert len(result.uuids) == 2
    assert REMOTE not in result.uuids


def test_unify_response_blank_uuid_is_none() -> None:
    assert UnifyResponse.model_validate({"uuid": ""}).uuid is None
    assert UnifyResponse.model_validate({}).uuid is None
    assert UnifyResponse.model_validate({"uuid": str(REMOTE), "peer": "crm"}).uuid == REMOTE
