"""Result values returned by the binding engine.

Failures crossing the engine boundary are values, not exceptions, so callers
can tell "not found" apart from "could not determine".
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Literal
from uuid import UUID

if TYPE_CHECKING:
    from bindery.domain.model import GetRequest


class ResolutionStatus(StrEnum):
    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"


class ResolutionPath(StrEnum):
    """Which step of the resolution chain produced a UUID."""

    BOUND = "bound"
    ALIAS = "alias"
    BUS = "bus"
    REGISTERED = "registered"


class FailureKind(StrEnum):
    NOT_FOUND = "not_found"
    STORE_ERROR = "store_error"
    TRANSPORT_ERROR = "transport_error"
    HASH_ERROR = "hash_error"


@dataclass(slots=True, frozen=True, kw_only=True)
class Resolved:
    uuid: UUID
    path: ResolutionPath
    status: Literal[ResolutionStatus.RESOLVED] = ResolutionStatus.RESOLVED


@dataclass(slots=True, frozen=True, kw_only=True)
class Unresolved:
    kind: FailureKind
    reason: str | None = None
    status: Literal[ResolutionStatus.UNRESOLVED] = ResolutionStatus.UNRESOLVED

    @property
    def not_found(self) -> bool:
        return self.kind is FailureKind.NOT_FOUND


@dataclass(slots=True, frozen=True, kw_only=True)
class IdentifierFound:
    identifier_name: str
    value: str
    status: Literal[ResolutionStatus.RESOLVED] = ResolutionStatus.RESOLVED


type UuidResolution = Resolved | Unresolved
type IdentifierResolution = IdentifierFound | Unresolved

type ReferenceResolver = Callable[[str, str, str, str], UuidResolution]
"""``(transaction_id, class_name, identifier_name, identifier_value) -> resolution``."""


@dataclass(slots=True, frozen=True, kw_only=True)
class ModificationCheck:
    modified: bool
    reason: str


@dataclass(slots=True, kw_only=True)
class MatchResult:
    """Canonical identities present in a dataset scan, in dataset order."""

    uuids: list[UUID] = field(default_factory=list[UUID])
    failures: dict[str, Unresolved] = field(default_factory=dict[str, Unresolved])
    skipped: int = 0


@dataclass(slots=True, kw_only=True)
class GetResult:
    """Outcome of a get.

    ``found`` is false when the UUID is unbound or its row vanished; that is
    still a success with nothing to report. ``confirmed`` tells whether the
    hash and timestamp could be written back to the binding store.
    """

    succeeded: bool
    request: GetRequest
    found: bool = False
    confirmed: bool = False
    failure: Unresolved | None = None


class UpdateAction(StrEnum):
    UPDATED = "updated"
    MATCHED = "matched"
    INSERTED = "inserted"
    REBOUND = "rebound"


@dataclass(slots=True, frozen=True, kw_only=True)
class UpdateResult:
    succeeded: bool
    action: UpdateAction | None = None
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.succeeded
