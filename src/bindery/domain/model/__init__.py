"""Domain model for the binding engine."""

from __future__ import annotations

from .binding import Binding
from .requests import GetRequest, UpdateRequest
from .schema import (
    IDENTIFIER_PREFIX,
    ClassSchema,
    Field,
    IdentifierMap,
    Reference,
    Replacement,
    Row,
    Scope,
    identifier_key,
    identifier_name,
    is_identifier_key,
)

__all__ = [
    "IDENTIFIER_PREFIX",
    "Binding",
    "ClassSchema",
    "Field",
    "GetRequest",
    "IdentifierMap",
    "Reference",
    "Replacement",
    "Row",
    "Scope",
    "UpdateRequest",
    "identifier_key",
    "identifier_name",
    "is_identifier_key",
]
