"""
Run gate: decide whether a new cycle of a lane may start.

Manifesto:
    A crash leaves a start marker and no end marker. That must not wedge
    the lane forever, and it must not let cycles pile on top of each other
    either. The gate trusts a start-without-end for a fixed grace interval
    and then lets the next trigger through.

    This is a heuristic, not mutual exclusion: a unit that legitimately
    runs longer than the grace interval can overlap with the next cycle.

Architecture:
    ::

        may_run(state, now, grace)
        ┌───────────────────────────────────────────────────────────┐
        │ last_started_at is None           → allowed (first run)   │
        │ last_ended_at is not None         → allowed (clean end)   │
        │ otherwise                                                 │
        │     next_eligible = started + grace                       │
        │     allowed = now >= next_eligible                        │
        └───────────────────────────────────────────────────────────┘

Examples:
    >>> from datetime import UTC, datetime, timedelta
    >>> start = datetime(2026, 1, 1, 10, 0, tzinfo=UTC)
    >>> state = RunState(last_started_at=start)
    >>> may_run(state, start + timedelta(minutes=3)).allowed
    False
    >>> may_run(state, start + timedelta(minutes=5, seconds=1)).allowed
    True

Tags:
    run-gate, crash-recovery, grace-interval, pure-function, runguard

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from runguard.core.run_state import RunState, format_timestamp

DEFAULT_GRACE = timedelta(minutes=5)


@dataclass(frozen=True)
class GateDecision:
    """Outcome of :func:`may_run`.

    ``next_eligible`` is only set when the previous cycle has no end marker.
    """

    allowed: bool
    next_eligible: datetime | None = None
    reason: str = ""

    def to_dict(self) -> dict[str, str | bool | None]:
        return {
            "allowed": self.allowed,
            "next_eligible": format_timestamp(self.next_eligible) if self.next_eligible else None,
            "reason": self.reason,
        }


def may_run(state: RunState, now: datetime, grace: timedelta = DEFAULT_GRACE) -> GateDecision:
    """Decide whether a cycle may start at ``now``. Pure; never touches storage."""
    if state.last_started_at is None:
        return GateDecision(allowed=True, reason="first run")

    if state.last_ended_at is not None:
        return GateDecision(allowed=True, reason="previous cycle ended")

    next_eligible = state.last_started_at + grace
    if now >= next_eligible:
        return GateDecision(allowed=True, next_eligible=next_eligible, reason="previous cycle presumed crashed")
    return GateDecision(allowed=False, next_eligible=next_eligible, reason="previous cycle still running")


__all__ = ["DEFAULT_GRACE", "GateDecision", "may_run"]
