"""Execution unit adapters and per-unit outcomes.

Units are owned by the application (message consumers, scheduled jobs);
runguard only references them by name.  These adapters turn a plain
function or a queue consumer into something the runner can execute.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from runguard.core.protocols import Consumer


@dataclass(frozen=True)
class UnitOutcome:
    """What happened to one unit in a cycle."""

    name: str
    success: bool
    message: str = ""
    duration_seconds: float = 0.0
    messages: tuple[str, ...] = field(default_factory=tuple)

    def line(self) -> str:
        """Human-readable status line (``"<name> OK"`` on success)."""
        if self.success:
            return f"{self.name} OK"
        return f"{self.name} FAILED: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "success": self.success,
            "message": self.message,
            "duration_seconds": round(self.duration_seconds, 3),
            "messages": list(self.messages),
        }


class CallableUnit:
    """Adapts ``fn(budget_seconds)`` to the ExecutionUnit protocol."""

    def __init__(self, name: str, fn: Callable[[int], Iterable[str] | None]) -> None:
        self.name = name
        self._fn = fn

    def run(self, budget_seconds: int) -> Iterable[str] | None:
        return self._fn(budget_seconds)

    def __repr__(self) -> str:
        return f"CallableUnit({self.name!r})"


class ConsumerUnit:
    """Adapts a queue consumer: ``run`` consumes, ``close`` stops its connection.

    The consumer is expected to return on its own once ``seconds`` elapsed;
    nothing interrupts it from outside.
    """

    def __init__(self, name: str, consumer: Consumer) -> None:
        self.name = name
        self.consumer = consumer

    def run(self, budget_seconds: int) -> None:
        self.consumer.consume(budget_seconds)

    def close(self) -> None:
        self.consumer.stop()

    def __repr__(self) -> str:
        return f"ConsumerUnit({self.name!r})"


__all__ = ["UnitOutcome", "CallableUnit", "ConsumerUnit"]
