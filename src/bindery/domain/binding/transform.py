"""Replacement-rule transformation applied to rows before use.

Rules are scanned in declaration order and the first one whose ``source``
equals the current value (case-insensitive) wins. Applying ``transform`` twice
is only equivalent to applying it once when no rule target is also the source
of another rule on the same field; keeping rule sets free of such chains is up
to whoever writes the schema.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from bindery.domain.model import ClassSchema, Row

log = logging.getLogger(__name__)


def row_value(row: Mapping[str, str | None], key: str) -> str | None:
    """Look up ``key`` exactly, then case-insensitively."""

    if key in row:
        return row[key]
    folded = key.casefold()
    for candidate, value in row.items():
        if candidate.casefold() == folded:
            return value
    return None


def transform(row: Mapping[str, str | None], schema: ClassSchema) -> Row:
    """Return a copy of ``row`` with the schema's replacement rules applied."""

    transformed: Row = dict(row)
    for key, value in row.items():
        field = schema.field_for_key(key)
        if field is None or not field.replacements:
            continue
        for rule in field.replacements:
            if rule.matches(value):
                log.debug("Replacing %s=%r with %r", key, value, rule.target)
                transformed[key] = rule.target
                break
    return transformed


def transform_all(rows: Iterable[Mapping[str, str | None]], schema: ClassSchema) -> list[Row]:
    return [transform(row, schema) for row in rows]
