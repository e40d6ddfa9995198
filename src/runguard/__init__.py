"""
runguard - periodic execution guard for cron-triggered lanes.

A lane is a named set of execution units (message consumers, scheduled
jobs) that an external trigger starts once per minute.  runguard makes
each invocation check a feature flag and a persisted start/end marker
pair before running anything, then runs every unit with failure
isolation and records the end marker.

Quick start::

    from runguard import CycleRunner, UnitRegistry, load_config
    from runguard.core.connection import SqliteConnection
    from runguard.core.settings_store import SqliteSettingsStore

    registry = UnitRegistry()

    @registry.unit("orders-queue")
    def consume_orders(budget_seconds):
        ...

    config = load_config("runguard.yaml")
    store = SqliteSettingsStore(SqliteConnection("runguard.db"))
    result = CycleRunner(store, registry).run_cycle(config.lane("rabbitmq-consumers"))
"""

from runguard.core.config import GuardConfig, LaneConfig, RunGuardSettings, get_settings, load_config
from runguard.core.errors import RunGuardError
from runguard.core.gate import GateDecision, may_run
from runguard.core.run_state import RunState, RunStateStore
from runguard.framework.dispatcher import DispatchResult, JobDispatcher, JobInvocation
from runguard.framework.registry import UnitRegistry
from runguard.framework.runner import CycleResult, CycleRunner

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CycleResult",
    "CycleRunner",
    "DispatchResult",
    "GateDecision",
    "GuardConfig",
    "JobDispatcher",
    "JobInvocation",
    "LaneConfig",
    "RunGuardError",
    "RunGuardSettings",
    "RunState",
    "RunStateStore",
    "UnitRegistry",
    "get_settings",
    "load_config",
    "may_run",
]
