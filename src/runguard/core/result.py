"""
Result envelope for explicit success/failure between runner steps.

Each gating step of a cycle (enabled check, run gate, unit resolution,
state writes) returns ``Ok`` or ``Err`` instead of raising, so the top of
the invocation can map the error kind to an exit code in one place.

Examples:
    >>> from runguard.core.result import Ok, Err
    >>> Ok(10).map(lambda x: x * 2).unwrap()
    20
    >>> Err(ValueError("oops")).unwrap_or(0)
    0

Tags:
    result-pattern, error-handling, runguard

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from runguard.core.errors import RunGuardError, wrap_error

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Get value or default (always returns value for Ok)."""
        return self.value

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """Transform the value if Ok."""
        return Ok(f(self.value))

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        """Chain to another Result-returning function."""
        return f(self.value)

    def to_dict(self) -> dict[str, Any]:
        return {"ok": True, "value": self.value}

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """Failed result containing a typed error."""

    error: RunGuardError

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the contained error."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        return default

    def map(self, f: Callable[[T], U]) -> Result[U]:
        return Err(self.error)

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        return Err(self.error)

    def to_dict(self) -> dict[str, Any]:
        return {"ok": False, "error": self.error.to_dict()}

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]


def try_result(f: Callable[..., T], *args: Any, **kwargs: Any) -> Result[T]:
    """
    Call ``f`` and wrap its outcome.

    Any ``Exception`` is captured as ``Err``; untyped exceptions are wrapped
    via :func:`~runguard.core.errors.wrap_error`. ``BaseException`` subclasses
    such as ``KeyboardInterrupt`` propagate.

    >>> try_result(int, "42").unwrap()
    42
    >>> try_result(int, "x").is_err()
    True
    """
    try:
        return Ok(f(*args, **kwargs))
    except Exception as e:
        return Err(wrap_error(e))


__all__ = ["Ok", "Err", "Result", "try_result"]
