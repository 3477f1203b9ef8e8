"""Domain port definitions for adapters."""

from __future__ import annotations

from .accessor import DatasetAccessor
from .bus import BusConnector
from .persistence import BindingRepository
from .unit_of_work import (
    BindingRepositories,
    BindingUnitOfWork,
    BindingUnitOfWorkFactory,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "BindingRepositories",
    "BindingRepository",
    "BindingUnitOfWork",
    "BindingUnitOfWorkFactory",
    "BusConnector",
    "DatasetAccessor",
    "RepositoryCollection",
    "UnitOfWork",
]
