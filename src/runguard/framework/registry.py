"""Unit registry: resolve unit names to executable handles.

Manifesto:
    A registry instance, built once at start-up, lets the runner find
    units by name without import-time coupling to the consumer or job
    code that owns them.  Application modules listed in the config expose
    ``register_units(registry)`` and are imported explicitly.

Tags:
    registry, unit-discovery, lookup, runguard

Doc-Types:
    api-reference
"""

from __future__ import annotations

import importlib
from collections.abc import Callable, Iterable, Sequence

from runguard.core.config import LaneConfig
from runguard.core.errors import ConfigError, UnknownUnitError
from runguard.core.logging import get_logger
from runguard.core.protocols import ExecutionUnit
from runguard.framework.units import CallableUnit

logger = get_logger(__name__)


class UnitRegistry:
    """Name → ExecutionUnit mapping.

    Example:
        >>> registry = UnitRegistry()
        >>> @registry.unit("orders-queue")
        ... def consume_orders(budget_seconds):
        ...     return None
        >>> registry.resolve("orders-queue").name
        'orders-queue'
    """

    def __init__(self, units: Iterable[ExecutionUnit] | None = None) -> None:
        self._units: dict[str, ExecutionUnit] = {}
        for unit in units or ():
            self.register(unit.name, unit)

    def register(self, name: str, unit: ExecutionUnit) -> ExecutionUnit:
        if name in self._units:
            raise ValueError(f"Unit '{name}' is already registered")
        self._units[name] = unit
        logger.debug("unit_registered", name=name, unit=type(unit).__name__)
        return unit

    def unit(self, name: str) -> Callable[[Callable[[int], Iterable[str] | None]], Callable[[int], Iterable[str] | None]]:
        """Decorator registering a plain function as a unit."""

        def decorator(fn: Callable[[int], Iterable[str] | None]) -> Callable[[int], Iterable[str] | None]:
            self.register(name, CallableUnit(name, fn))
            return fn

        return decorator

    def resolve(self, name: str) -> ExecutionUnit:
        try:
            return self._units[name]
        except KeyError:
            raise UnknownUnitError(name, available=list(self._units)) from None

    def resolve_many(self, names: Sequence[str]) -> list[ExecutionUnit]:
        """Resolve every name before anything runs; fails on the first unknown one."""
        return [self.resolve(name) for name in names]

    def default_set(self, lane: LaneConfig) -> list[str]:
        """The lane's configured unit names, in declaration order."""
        return list(lane.units)

    def names(self) -> list[str]:
        return sorted(self._units)

    def __contains__(self, name: object) -> bool:
        return name in self._units

    def __len__(self) -> int:
        return len(self._units)


def load_unit_modules(registry: UnitRegistry, modules: Sequence[str]) -> UnitRegistry:
    """Import each module and call its ``register_units(registry)``."""
    for module_name in modules:
        try:
            module = importlib.import_module(module_name)
        except Exception as e:
            raise ConfigError(f"Cannot import unit module {module_name}: {type(e).__name__}: {e}", cause=e) from e
        register = getattr(module, "register_units", None)
        if not callable(register):
            raise ConfigError(f"Unit module {module_name} has no register_units(registry)")
        try:
            register(registry)
        except Exception as e:
            raise ConfigError(
                f"Unit module {module_name} failed to register its units: {e}", cause=e
            ).with_context(module=module_name) from e
        logger.debug("unit_module_loaded", module=module_name, registered=len(registry))
    return registry


__all__ = ["UnitRegistry", "load_unit_modules"]
