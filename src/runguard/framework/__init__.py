"""
runguard.framework - units, registry, cycle runner and job dispatch.
"""

from runguard.framework.dispatcher import DispatchResult, JobDispatcher, JobInvocation
from runguard.framework.jobs import JobDefinition, SqliteJobRepository, UnitScheduler
from runguard.framework.registry import UnitRegistry, load_unit_modules
from runguard.framework.runner import CycleResult, CycleRunner
from runguard.framework.units import CallableUnit, ConsumerUnit, UnitOutcome

__all__ = [
    "CallableUnit",
    "ConsumerUnit",
    "CycleResult",
    "CycleRunner",
    "DispatchResult",
    "JobDefinition",
    "JobDispatcher",
    "JobInvocation",
    "SqliteJobRepository",
    "UnitOutcome",
    "UnitRegistry",
    "UnitScheduler",
    "load_unit_modules",
]
