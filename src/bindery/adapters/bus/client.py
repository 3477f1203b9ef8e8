"""HTTP client for the shared bus."""

from __future__ import annotations

import asyncio
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from bindery.adapters.http_resilience import ResilientClient
from bindery.config.bus import get_bus_config
from bindery.domain.errors import TransportError

from .schema import UnifyResponse

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from bindery.config.http_resilience import ResilienceConfig

log = getLogger(__name__)

UNIFY_PATH = "/unify"
_MAX_TRACKED_REQUESTS = 4096


def _default_resilience_config() -> ResilienceConfig:
    return get_bus_config().resilience


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class HttpBusConnector:
    """Resolves identifiers through peers reachable via the bus.

    Requests a peer sent to this system are recorded per (transaction, class)
    through ``record_incoming``; resolving within such a transaction must not
    ask the bus again. Outgoing ``unify`` calls are not tracked.
    """

    resilience: ResilienceConfig = field(default_factory=_default_resilience_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _incoming: OrderedDict[tuple[str, str], None] = field(
        default_factory=OrderedDict[tuple[str, str], None]
    )
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def unify(
        self,
        transaction_id: str,
        class_name: str,
        identifier_name: str,
        identifier_value: str,
        self_request: bool,  # noqa: FBT001
    ) -> UUID | None:
        params = httpx.QueryParams(
            {
                "class": class_name,
                "name": identifier_name,
                "value": identifier_value,
                "transaction_id": transaction_id,
                "self_request": "true" if self_request else "false",
            }
        )
        response = asyncio.run(self._unify_async(params))
        log.debug(
            "Bus unify %s.%s=%s -> %s",
            class_name,
            identifier_name,
            identifier_value,
            response.uuid,
        )
        return response.uuid

    def record_incoming(self, transaction_id: str, class_name: str) -> None:
        key = (transaction_id, class_name)
        with self._lock:
            self._incoming[key] = None
            self._incoming.move_to_end(key)
            while len(self._incoming) > _MAX_TRACKED_REQUESTS:
                self._incoming.popitem(last=False)

    def is_self_request(self, transaction_id: str, class_name: str) -> bool:
        with self._lock:
            return (transaction_id, class_name) in self._incoming

    async def _unify_async(self, params: httpx.QueryParams) -> UnifyResponse:
        base_url = (self.resilience.base_url or "").rstrip("/")
        try:
            async with self.client_factory(self.resilience) as client:
                response = await client.get(f"{base_url}{UNIFY_PATH}", params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            raise TransportError(f"Bus request failed: {exc}") from exc
        except ValueError as exc:
            raise TransportError(f"Bus returned malformed JSON: {exc}") from exc

        try:
            return UnifyResponse.model_validate(payload)
        except ValidationError as exc:
            raise TransportError(f"Unexpected bus payload: {exc}") from exc


if TYPE_CHECKING:
    from bindery.domain.ports import BusConnector

    _bus_check: BusConnector = HttpBusConnector()
