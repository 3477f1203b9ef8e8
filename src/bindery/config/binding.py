"""Binding engine settings."""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from typing import Final

from .env import env_bool, require_env_var
from .errors import ConfigurationError

DEFAULT_TABLE_PREFIX: Final[str] = "binding"
DEFAULT_HASH_ALGORITHM: Final[str] = "sha1"


@dataclass(frozen=True, slots=True)
class BindingConfig:
    """Settings shared by every class served by this connector."""

    system_id: str
    table_prefix: str = DEFAULT_TABLE_PREFIX
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    register_unknown: bool = True

    def __post_init__(self) -> None:
        if not self.table_prefix.replace("_", "").isalnum():
            raise ConfigurationError(
                f"Binding table prefix must be alphanumeric, got {self.table_prefix!r}"
            )
        if self.hash_algorithm not in hashlib.algorithms_available:
            raise ConfigurationError(f"Unsupported hash algorithm: {self.hash_algorithm}")


def get_binding_config() -> BindingConfig:
    return BindingConfig(
        system_id=require_env_var("BINDERY_SYSTEM_ID"),
        table_prefix=os.getenv("BINDERY_TABLE_PREFIX") or DEFAULT_TABLE_PREFIX,
        hash_algorithm=os.getenv("BINDERY_HASH_ALGORITHM") or DEFAULT_HASH_ALGORITHM,
        register_unknown=env_bool("BINDERY_REGISTER_UNKNOWN", default=True),
    )
