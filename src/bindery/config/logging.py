"""Shared logging helpers for bindery."""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "BINDERY_LOG_LEVEL"


def configure_logging(*, level: int | str | None = None, force: bool = False) -> None:
    """Initialise the root logger once with a terse CLI format.

    ``level`` falls back to ``BINDERY_LOG_LEVEL`` and then to INFO. Resolution
    tracing (fast path hits, alias comparisons) is only visible at DEBUG.
    Pass ``force=True`` to reconfigure during tests.
    """

    effective: int | str = level or os.getenv(LOG_LEVEL_ENV, "").strip().upper() or logging.INFO
    logging.basicConfig(
        level=effective,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
