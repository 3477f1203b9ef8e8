"""Public interface for the bus adapter."""

from __future__ import annotations

from .client import HttpBusConnector
from .schema import UnifyResponse

__all__ = [
    "HttpBusConnector",
    "UnifyResponse",
]
