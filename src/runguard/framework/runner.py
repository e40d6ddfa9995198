"""
Cycle runner: one gated, start/end-bracketed invocation of a lane.

Manifesto:
    The runner gives every unit the same lifecycle (resolve → run → close →
    record outcome) so unit code never manages gating, markers, or failure
    reporting itself.  One unit failing never stops the next one.

Architecture:
    ::

        run_cycle(lane, requested_unit, budget_seconds, now)
        ┌──────────────────────────────────────────────────────────────┐
        │ 1. enabled flag          → DisabledError     (no mutation)   │
        │ 2. may_run(state, now)   → ThrottledError    (no mutation)   │
        │ 3. resolve unit names    → UnknownUnitError  (no mutation)   │
        │ 4. set_start(now); set_end(None)                             │
        │ 5. for unit in units: run(budget) → close() → UnitOutcome    │
        │ 6. set_end(clock())                                          │
        │ 7. CycleResult(exit_code = 1 if any error else 0)            │
        └──────────────────────────────────────────────────────────────┘

    Each step returns ``Ok`` / ``Err``; the first ``Err`` becomes the
    cycle's error, is logged and alerted, and maps to exit code 1.
    A BaseException escaping step 5 (process killed, interrupted) leaves
    the start marker without an end marker; the run gate tolerates that.

Tags:
    runner, cycle, failure-isolation, run-gate, runguard

Doc-Types:
    api-reference
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from runguard.core.alerts import Alerter
from runguard.core.config import LaneConfig
from runguard.core.errors import (
    DisabledError,
    RunGuardError,
    ThrottledError,
    UnitExecutionError,
    wrap_error,
)
from runguard.core.gate import GateDecision, may_run
from runguard.core.logging import bind_context, get_logger, unbind_context
from runguard.core.protocols import ExecutionUnit, SettingsStore
from runguard.core.result import Err, Ok, Result, try_result
from runguard.core.run_state import RunState, RunStateStore, format_timestamp
from runguard.framework.registry import UnitRegistry
from runguard.framework.units import UnitOutcome

logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC, like stored markers."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def flag_enabled(raw: str | None) -> bool:
    """A lane flag is on only when its stored value is the integer 1."""
    if raw is None:
        return False
    try:
        return int(raw.strip()) == 1
    except ValueError:
        return False


@dataclass
class CycleResult:
    """Outcome of one invocation, consumed by the CLI."""

    lane: str
    exit_code: int
    outcomes: list[UnitOutcome] = field(default_factory=list)
    error: RunGuardError | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def failed_units(self) -> list[str]:
        return [o.name for o in self.outcomes if not o.success]

    def lines(self) -> list[str]:
        """One line per unit outcome, then the error summary if any."""
        lines = [outcome.line() for outcome in self.outcomes]
        if self.error is not None:
            lines.append(self.error.summary())
        return lines

    def to_dict(self) -> dict:
        return {
            "lane": self.lane,
            "exit_code": self.exit_code,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "error": self.error.to_dict() if self.error else None,
            "started_at": format_timestamp(self.started_at) if self.started_at else None,
            "ended_at": format_timestamp(self.ended_at) if self.ended_at else None,
        }


class CycleRunner:
    """
    Runs the units of a lane once, guarded by the run gate.

    There is no in-process mutual exclusion: each trigger is a fresh
    process, and correctness rests on the persisted markers plus the
    grace interval.
    """

    def __init__(
        self,
        settings: SettingsStore,
        registry: UnitRegistry,
        *,
        grace_seconds: int = 300,
        default_budget_seconds: int = 1,
        alerter: Alerter | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.grace_seconds = grace_seconds
        self.default_budget_seconds = default_budget_seconds
        self.alerter = alerter or Alerter()
        self.clock = clock or _utc_now

    def state_store(self, lane: LaneConfig) -> RunStateStore:
        return RunStateStore(self.settings, lane.state_key_prefix)

    def describe(self, lane: LaneConfig, now: datetime | None = None) -> tuple[RunState, GateDecision]:
        """Current markers and what the gate would decide at ``now``."""
        state = self.state_store(lane).get()
        return state, may_run(state, as_utc(now or self.clock()), lane.grace(self.grace_seconds))

    # === Steps ===

    def _check_enabled(self, lane: LaneConfig) -> Result[None]:
        if lane.enabled_key is None:
            return Ok(None)
        raw = try_result(self.settings.get_setting, lane.enabled_key)
        if raw.is_err():
            return raw
        if not flag_enabled(raw.unwrap()):
            return Err(
                DisabledError(f"Lane {lane.name} is disabled in the settings table").with_context(
                    lane=lane.name, key=lane.enabled_key
                )
            )
        return Ok(None)

    def _check_gate(self, store: RunStateStore, lane: LaneConfig, now: datetime) -> Result[GateDecision]:
        state = try_result(store.get)
        if state.is_err():
            return state
        decision = may_run(state.unwrap(), now, lane.grace(self.grace_seconds))
        if not decision.allowed:
            until = format_timestamp(decision.next_eligible) if decision.next_eligible else "previous cycle ends"
            return Err(
                ThrottledError(
                    f"Lane {lane.name} is stopped till {until} or till the previous cycle ends",
                    next_eligible=decision.next_eligible,
                ).with_context(lane=lane.name)
            )
        if decision.next_eligible is not None:
            logger.warning("cycle.stale_run_recovered", next_eligible=format_timestamp(decision.next_eligible))
        return Ok(decision)

    def _resolve_units(self, lane: LaneConfig, requested_unit: str | None) -> Result[list[ExecutionUnit]]:
        names = [requested_unit] if requested_unit else self.registry.default_set(lane)
        return try_result(self.registry.resolve_many, names)

    def _mark_start(self, store: RunStateStore, now: datetime) -> Result[None]:
        def mark() -> None:
            store.set_start(now)
            # A cleared end marker makes this cycle look in-flight to the next trigger.
            store.set_end(None)

        return try_result(mark)

    def _mark_end(self, store: RunStateStore, started_at: datetime) -> Result[datetime]:
        # The injected clock may lag an explicit ``now``; never end before the start.
        ended_at = max(as_utc(self.clock()), started_at)
        return try_result(store.set_end, ended_at).map(lambda _: ended_at)

    def _run_unit(self, unit: ExecutionUnit, budget_seconds: int, lane: LaneConfig) -> UnitOutcome:
        bind_context(unit=unit.name)
        started = time.monotonic()
        error: RunGuardError | None = None
        messages: tuple[str, ...] = ()
        try:
            messages = tuple(unit.run(budget_seconds) or ())
        except Exception as e:
            error = UnitExecutionError(unit.name, e).with_context(lane=lane.name)
            logger.error("cycle.unit_failed", error=error.message, exc_info=True)
        finally:
            close_error = self._close_unit(unit)
            unbind_context("unit")
        if error is None and close_error is not None:
            error = close_error.with_context(lane=lane.name)

        duration = time.monotonic() - started
        if error is not None:
            self.alerter.error(error, source=lane.name)
            return UnitOutcome(unit.name, False, error.message, duration, messages)

        logger.info("cycle.unit_completed", unit=unit.name, duration_ms=round(duration * 1000, 2))
        return UnitOutcome(unit.name, True, "", duration, messages)

    def _close_unit(self, unit: ExecutionUnit) -> RunGuardError | None:
        close = getattr(unit, "close", None)
        if not callable(close):
            return None
        try:
            close()
        except Exception as e:
            logger.error("cycle.unit_close_failed", unit=unit.name, error=str(e))
            return UnitExecutionError(unit.name, e)
        return None

    # === Entry point ===

    def run_cycle(
        self,
        lane: LaneConfig,
        requested_unit: str | None = None,
        budget_seconds: int | None = None,
        now: datetime | None = None,
    ) -> CycleResult:
        """Run one cycle of ``lane``; never raises for ``Exception`` subclasses."""
        now = as_utc(now or self.clock())
        budget = budget_seconds or self.default_budget_seconds
        store = self.state_store(lane)
        outcomes: list[UnitOutcome] = []
        bind_context(lane=lane.name)
        try:
            gate = (
                self._check_enabled(lane)
                .flat_map(lambda _: self._check_gate(store, lane, now))
                .flat_map(lambda _: self._resolve_units(lane, requested_unit))
            )
            if gate.is_err():
                return self._fail(lane, gate.error)
            units = gate.unwrap()

            started = self._mark_start(store, now)
            if started.is_err():
                return self._fail(lane, started.error)
            logger.info("cycle.started", units=[u.name for u in units], budget_seconds=budget)

            for unit in units:
                outcomes.append(self._run_unit(unit, budget, lane))

            ended = self._mark_end(store, now)
            if ended.is_err():
                return self._fail(lane, ended.error, outcomes=outcomes, started_at=now)

            failed = [o.name for o in outcomes if not o.success]
            logger.info("cycle.completed", units=len(outcomes), failed=failed)
            return CycleResult(
                lane=lane.name,
                exit_code=1 if failed else 0,
                outcomes=outcomes,
                started_at=now,
                ended_at=ended.unwrap(),
            )
        except Exception as e:
            return self._fail(lane, wrap_error(e), outcomes=outcomes, started_at=now)
        finally:
            unbind_context("lane")

    def _fail(
        self,
        lane: LaneConfig,
        error: RunGuardError,
        *,
        outcomes: list[UnitOutcome] | None = None,
        started_at: datetime | None = None,
    ) -> CycleResult:
        error.with_context(lane=lane.name)
        if isinstance(error, ThrottledError):
            logger.info("cycle.throttled", **error.to_dict())
        else:
            logger.error("cycle.failed", **error.to_dict())
            self.alerter.error(error, source=lane.name)
        return CycleResult(
            lane=lane.name,
            exit_code=1,
            outcomes=outcomes or [],
            error=error,
            started_at=started_at,
        )


__all__ = ["CycleResult", "CycleRunner", "as_utc", "flag_enabled"]
