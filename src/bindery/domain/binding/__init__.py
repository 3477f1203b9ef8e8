"""Binding and resolution engine.

Layered flow for one class:
1) transform raw rows with the schema's replacement rules
2) fingerprint non-identifier content for change detection
3) resolve identifiers to canonical UUIDs (bound, alias, bus, registered)
4) reconcile datasets and requests (match, get, update) on top of 1-3
"""

from __future__ import annotations

from .context import BindingContext
from .contracts import (
    FailureKind,
    GetResult,
    IdentifierFound,
    MatchResult,
    ModificationCheck,
    ResolutionPath,
    ResolutionStatus,
    Resolved,
    Unresolved,
    UpdateAction,
    UpdateResult,
)
from .hashing import content_hash
from .registry import BindingRegistry, ClassDescriptor, UnknownClassError
from .service import BindingService
from .transform import transform

__all__ = [
    "BindingContext",
    "BindingRegistry",
    "BindingService",
    "ClassDescriptor",
    "FailureKind",
    "GetResult",
    "IdentifierFound",
    "MatchResult",
    "ModificationCheck",
    "ResolutionPath",
    "ResolutionStatus",
    "Resolved",
    "UnknownClassError",
    "Unresolved",
    "UpdateAction",
    "UpdateResult",
    "content_hash",
    "transform",
]
