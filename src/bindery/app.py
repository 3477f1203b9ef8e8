"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from bindery.adapters.bus import HttpBusConnector
from bindery.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyBindingUnitOfWork,
    ensure_tables,
    is_started,
    startup,
)
from bindery.config import get_binding_config, get_bus_config
from bindery.domain.binding import BindingRegistry

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from bindery.config import BindingConfig
    from bindery.domain.model import Binding
    from bindery.domain.ports import BindingUnitOfWorkFactory, BusConnector, DatasetAccessor


log = getLogger(__name__)


def _ensure_started(config: BindingConfig) -> None:
    if not is_started():
        startup(table_prefix=config.table_prefix)


def build_registry(
    accessors: Iterable[DatasetAccessor] = (),
    *,
    config: BindingConfig | None = None,
    bus: BusConnector | None = None,
    use_bus: bool = True,
    unit_of_work_factory: BindingUnitOfWorkFactory | None = None,
) -> BindingRegistry:
    """Wire a registry for ``accessors`` from environment configuration.

    Without an explicit ``bus`` the HTTP bus connector is used when
    ``use_bus`` is set; with ``use_bus=False`` resolution stays local.
    """

    effective_config = config or get_binding_config()
    if unit_of_work_factory is None:
        _ensure_started(effective_config)
        unit_of_work_factory = SqlAlchemyBindingUnitOfWork
    if bus is None and use_bus:
        bus = HttpBusConnector(resilience=get_bus_config().resilience)

    registry = BindingRegistry(
        system_id=effective_config.system_id,
        unit_of_work_factory=unit_of_work_factory,
        bus=bus,
        hash_algorithm=effective_config.hash_algorithm,
        register_unknown=effective_config.register_unknown,
    )
    for accessor in accessors:
        registry.register(accessor)
    log.info(
        "Binding registry ready: system=%s, classes=%s, bus=%s",
        effective_config.system_id,
        ", ".join(registry.class_names) or "-",
        type(bus).__name__ if bus else "none",
    )
    return registry


def init_binding_tables(class_names: Sequence[str], *, config: BindingConfig | None = None) -> None:
    """Create binding tables for ``class_names`` in the configured store."""

    _ensure_started(config or get_binding_config())
    ensure_tables(class_names)
    log.info("Binding tables ready for %s", ", ".join(class_names))


def list_bindings(
    class_name: str,
    *,
    include_disabled: bool = False,
    config: BindingConfig | None = None,
) -> Sequence[Binding]:
    _ensure_started(config or get_binding_config())
    with SqlAlchemyBindingUnitOfWork(class_name) as uow:
        return uow.repositories.bindings.list(include_disabled=include_disabled)


def identifier_for_uuid(
    class_name: str,
    identifier_name: str,
    uuid: UUID,
    *,
    config: BindingConfig | None = None,
) -> str | None:
    """Return the bound identifier value without consulting any backend."""

    _ensure_started(config or get_binding_config())
    with SqlAlchemyBindingUnitOfWork(class_name) as uow:
        binding = uow.repositories.bindings.find_by_uuid(uuid, identifier_name)
    return None if binding is None else binding.identifier_value


def disable_binding(
    class_name: str,
    identifier_name: str,
    identifier_value: str,
    *,
    config: BindingConfig | None = None,
) -> int:
    _ensure_started(config or get_binding_config())
    with SqlAlchemyBindingUnitOfWork(class_name) as uow:
        disabled = uow.repositories.bindings.disable(identifier_name, identifier_value)
        uow.commit()
    return disabled
