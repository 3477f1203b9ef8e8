"""Content fingerprints used for change detection."""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING, Final

from bindery.domain.errors import HashError

from .transform import row_value

if TYPE_CHECKING:
    from collections.abc import Mapping

    from bindery.domain.model import ClassSchema

HASH_SEPARATOR: Final[str] = "~"
DEFAULT_ALGORITHM: Final[str] = "sha1"


def content_hash(
    row: Mapping[str, str | None],
    schema: ClassSchema,
    *,
    algorithm: str = DEFAULT_ALGORITHM,
) -> str:
    """Digest the non-identifier values of ``row`` in schema declaration order.

    Identifier values never contribute, so two rows describing the same content
    under different keys hash equally. Missing values hash as empty strings.
    Raises ``HashError`` if the algorithm is unavailable or a value cannot be
    encoded.
    """

    payload = HASH_SEPARATOR.join(row_value(row, field.path) or "" for field in schema.attributes)
    try:
        digest = hashlib.new(algorithm)
    except ValueError as exc:
        raise HashError(f"Hash algorithm unavailable: {algorithm}") from exc
    try:
        digest.update(payload.encode("utf-8"))
        return digest.hexdigest()
    except UnicodeEncodeError as exc:
        raise HashError(f"Row values of {schema.name} are not encodable") from exc
    except TypeError as exc:
        # variable-length digests (shake_*) need an explicit length
        raise HashError(f"Hash algorithm {algorithm} needs a digest length") from exc
