"""Application configuration helpers."""

from __future__ import annotations

from .binding import BindingConfig, get_binding_config
from .bus import BusConfig, get_bus_config
from .env import env_bool, env_float, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)

__all__ = [
    "BindingConfig",
    "BusConfig",
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "env_bool",
    "env_float",
    "get_binding_config",
    "get_bus_config",
    "get_database_config",
    "get_database_uri",
    "get_storage_config",
    "require_env_var",
    "require_env_vars",
]
