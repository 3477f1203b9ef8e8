"""Static description of a business class as exposed by one backend.

Rows coming out of a backend use two key forms: identifiers are stored under
``#<identifier id>`` and plain attributes under their ``path``. Fields match
keys case-insensitively.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Final

from bindery.domain.errors import SchemaError

IDENTIFIER_PREFIX: Final[str] = "#"

type Row = dict[str, str | None]


def identifier_key(name: str) -> str:
    return f"{IDENTIFIER_PREFIX}{name}"


def is_identifier_key(key: str) -> bool:
    return key.startswith(IDENTIFIER_PREFIX)


def identifier_name(key: str) -> str:
    """Strip the identifier prefix from a row key."""
    return key.removeprefix(IDENTIFIER_PREFIX)


class Scope(StrEnum):
    LOCAL = "local"
    GLOBAL = "global"


@dataclass(frozen=True, slots=True)
class Replacement:
    """Value substitution applied before hashing, comparison and exposure."""

    source: str
    target: str

    def matches(self, value: str | None) -> bool:
        return value is not None and self.source.casefold() == value.casefold()


@dataclass(frozen=True, slots=True)
class Reference:
    """Pointer from an attribute to another class's identifier."""

    target_class: str
    target_field: str

    @classmethod
    def parse(cls, value: str) -> Reference:
        """Parse the ``Class.identifier`` notation used by schema descriptors."""

        target_class, sep, target_field = value.partition(".")
        if not sep or not target_class or not target_field:
            raise SchemaError(f"Reference must look like 'Class.identifier', got {value!r}")
        return cls(target_class=target_class, target_field=target_field)


@dataclass(frozen=True, slots=True, kw_only=True)
class Field:
    id: str
    path: str = ""
    description: str = ""
    is_identifier: bool = False
    scope: Scope = Scope.LOCAL
    replacements: tuple[Replacement, ...] = ()
    reference: Reference | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise SchemaError("Field id must not be empty")
        if self.is_identifier and self.reference is not None:
            raise SchemaError(f"Identifier field {self.id!r} cannot reference another class")
        if not self.is_identifier and not self.path:
            raise SchemaError(f"Attribute field {self.id!r} needs a path")

    @property
    def key(self) -> str:
        """Row key under which this field's value is stored."""
        return identifier_key(self.id) if self.is_identifier else self.path

    @property
    def is_global(self) -> bool:
        return self.scope is Scope.GLOBAL

    def matches_key(self, key: str) -> bool:
        if self.is_identifier:
            return is_identifier_key(key) and identifier_name(key).casefold() == self.id.casefold()
        return self.path.casefold() == key.casefold()


@dataclass(frozen=True, slots=True)
class ClassSchema:
    name: str
    fields: tuple[Field, ...]

    def __post_init__(self) -> None:
        identifiers = [field.id.casefold() for field in self.fields if field.is_identifier]
        if not identifiers:
            raise SchemaError(f"Class {self.name!r} declares no identifier field")
        if len(set(identifiers)) != len(identifiers):
            raise SchemaError(f"Class {self.name!r} declares duplicate identifiers")

    @property
    def identifiers(self) -> tuple[Field, ...]:
        return tuple(field for field in self.fields if field.is_identifier)

    @property
    def attributes(self) -> tuple[Field, ...]:
        return tuple(field for field in self.fields if not field.is_identifier)

    def field_for_key(self, key: str) -> Field | None:
        for field in self.fields:
            if field.matches_key(key):
                return field
        return None


@dataclass(frozen=True, slots=True)
class IdentifierMap:
    """Identifier names of one class, computed once from its schema.

    ``names`` keeps schema declaration order; the first entry is the primary
    identifier used by match/get/is_modified. ``exposed`` carries the names
    announced to the bus: local identifiers are qualified with the system id
    since they are meaningless elsewhere.
    """

    names: tuple[str, ...]
    global_names: tuple[str, ...]
    exposed: tuple[str, ...]

    @classmethod
    def from_schema(cls, schema: ClassSchema, *, system_id: str) -> IdentifierMap:
        identifiers = schema.identifiers
        return cls(
            names=tuple(field.id for field in identifiers),
            global_names=tuple(field.id for field in identifiers if field.is_global),
            exposed=tuple(
                field.id if field.is_global else f"{system_id}:{field.id}"
                for field in identifiers
            ),
        )

    @property
    def primary(self) -> str:
        return self.names[0]

    def local_name(self, name: str) -> str:
        """Map an exposed (possibly system-qualified) name back to the field id."""

        for local, exposed in zip(self.names, self.exposed, strict=True):
            if name.casefold() in {local.casefold(), exposed.casefold()}:
                return local
        return name
