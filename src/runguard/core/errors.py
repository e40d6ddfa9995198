"""
Structured error types for runguard.

Every failure a guarded invocation can hit is one of a small set of typed
errors. The top of a cycle or dispatch catches them, renders a single-line
summary, forwards them to the alerter, and maps them to a non-zero exit code.

Manifesto:
    - **Typed kinds:** DisabledError, ThrottledError, UnknownUnitError,
      StorageError, UnitExecutionError, JobNotFoundError, ConfigError
    - **Rich context:** Errors carry lane/unit/job metadata for logging
    - **Error chaining:** The original exception is preserved as ``cause``
    - **No retries here:** The external trigger calls again next minute,
      so nothing in this hierarchy is retryable

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────┐
        │                     RunGuardError                          │
        │          (category, retryable, context, cause)             │
        ├───────────────────────────────────────────────────────────┤
        │  DisabledError      ThrottledError      UnknownUnitError   │
        │  (CONFIG)           (THROTTLE)          (REGISTRY)         │
        │                     next_eligible       unit_name          │
        │                                                            │
        │  StorageError       UnitExecutionError  JobNotFoundError   │
        │  (STORAGE)          (EXECUTION)         (REGISTRY)         │
        │                                                            │
        │  ConfigError                                               │
        │  (CONFIG)                                                  │
        └───────────────────────────────────────────────────────────┘

Examples:
    >>> error = ThrottledError("lane busy", next_eligible=None)
    >>> error.category
    <ErrorCategory.THROTTLE: 'THROTTLE'>
    >>> error.with_context(lane="rabbitmq-consumers").context["lane"]
    'rabbitmq-consumers'

Tags:
    error-handling, exception-hierarchy, error-context, runguard

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and alert routing."""

    CONFIG = "CONFIG"  # Feature switched off, bad config file
    THROTTLE = "THROTTLE"  # Run gate denied the cycle
    REGISTRY = "REGISTRY"  # Unknown unit or job
    STORAGE = "STORAGE"  # Settings/state store read or write
    EXECUTION = "EXECUTION"  # A unit raised while running
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


class RunGuardError(Exception):
    """
    Base exception for all runguard errors.

    Subclasses set ``default_category`` so callers rarely pass one.

    Attributes:
        message: Human-readable summary (one line)
        category: ErrorCategory used for alert routing
        retryable: Always False unless a caller says otherwise
        context: Free-form metadata (lane, unit, job_id, ...)
        cause: Underlying exception, also chained as ``__cause__``
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RunGuardError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StorageError("write failed").with_context(lane="rabbitmq-consumers")
        """
        self.context.update({k: v for k, v in kwargs.items() if v is not None})
        return self

    def summary(self) -> str:
        """Single-line ``<Type>: <message>`` string for terminal output."""
        return f"{self.__class__.__name__}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# GATE ERRORS
# =============================================================================


class DisabledError(RunGuardError):
    """The lane's feature flag is switched off."""

    default_category = ErrorCategory.CONFIG


class ThrottledError(RunGuardError):
    """The run gate denied a new cycle because the previous one has no end marker."""

    default_category = ErrorCategory.THROTTLE

    def __init__(self, message: str, *, next_eligible: datetime | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.next_eligible = next_eligible

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.next_eligible is not None:
            result["next_eligible"] = self.next_eligible.isoformat()
        return result


# =============================================================================
# REGISTRY ERRORS
# =============================================================================


class UnknownUnitError(RunGuardError):
    """Requested unit name is not registered."""

    default_category = ErrorCategory.REGISTRY

    def __init__(self, unit_name: str, available: list[str] | None = None):
        self.unit_name = unit_name
        self.available = sorted(available or [])
        message = f"Unknown unit: {unit_name}"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message, context={"unit": unit_name})


class JobNotFoundError(RunGuardError):
    """No scheduled job definition exists for the requested id."""

    default_category = ErrorCategory.REGISTRY

    def __init__(self, job_id: str, project_id: str | None = None):
        self.job_id = job_id
        self.project_id = project_id
        super().__init__(
            "Job not found",
            context={"job_id": job_id, "project_id": project_id} if project_id else {"job_id": job_id},
        )


# =============================================================================
# INFRASTRUCTURE ERRORS
# =============================================================================


class StorageError(RunGuardError):
    """Settings or run-state store read/write failed."""

    default_category = ErrorCategory.STORAGE


class ConfigError(RunGuardError):
    """Configuration file or lane definition is missing or invalid."""

    default_category = ErrorCategory.CONFIG


class UnitExecutionError(RunGuardError):
    """A unit raised while running; captured per unit, never aborts a cycle."""

    default_category = ErrorCategory.EXECUTION

    def __init__(self, unit_name: str, cause: BaseException):
        self.unit_name = unit_name
        super().__init__(
            f"{type(cause).__name__}: {cause}",
            context={"unit": unit_name},
            cause=cause,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def wrap_error(error: BaseException) -> RunGuardError:
    """Return ``error`` unchanged if typed, else wrap it as an INTERNAL error."""
    if isinstance(error, RunGuardError):
        return error
    return RunGuardError(f"{type(error).__name__}: {error}", cause=error)


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
    "wrap_error",
]
