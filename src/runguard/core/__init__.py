"""
runguard.core - gate primitives, persistence and ambient stack.

Re-exports the pieces most callers need; everything else is importable
from its module.
"""

from runguard.core.errors import (
    ConfigError,
    DisabledError,
    ErrorCategory,
    JobNotFoundError,
    RunGuardError,
    StorageError,
    ThrottledError,
    UnitExecutionError,
    UnknownUnitError,
)
from runguard.core.gate import DEFAULT_GRACE, GateDecision, may_run
from runguard.core.result import Err, Ok, Result, try_result
from runguard.core.run_state import RunState, RunStateStore

__all__ = [
    "ErrorCategory",
    "RunGuardError",
    "DisabledError",
    "ThrottledError",
    "UnknownUnitError",
    "JobNotFoundError",
    "StorageError",
    "ConfigError",
    "UnitExecutionError",
    "DEFAULT_GRACE",
    "GateDecision",
    "may_run",
    "Ok",
    "Err",
    "Result",
    "try_result",
    "RunState",
    "RunStateStore",
]
