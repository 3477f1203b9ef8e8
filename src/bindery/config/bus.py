"""Shared bus connector configuration."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, require_env_var
from .http_resilience import CacheConfig, ResilienceConfig, RetryPolicy

DEFAULT_BUS_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class BusConfig:
    resilience: ResilienceConfig


def get_bus_config() -> BusConfig:
    base_url = require_env_var("BUS_BASE_URL")
    timeout = env_float("BUS_TIMEOUT_SECONDS", DEFAULT_BUS_TIMEOUT_SECONDS)
    cache_ttl = env_float("BUS_CACHE_TTL_SECONDS", 0.0)

    resilience = ResilienceConfig(
        name="bus",
        base_url=base_url.rstrip("/"),
        timeout_seconds=timeout,
        retry=RetryPolicy(),
        cache=CacheConfig(default_ttl_seconds=cache_ttl) if cache_ttl > 0 else None,
        default_headers={"Accept": "application/json"},
    )
    return BusConfig(resilience=resilience)
