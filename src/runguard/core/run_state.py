"""
Run-state bookkeeping for an execution lane.

Manifesto:
    A lane is run by a fresh process every minute. The only memory shared
    between those processes is two timestamps in the settings table: when
    the last cycle started and when it ended. A start without an end means
    the previous cycle is still running, or crashed.

    - **Explicit store:** RunStateStore is passed in, never global
    - **No locking:** Reads and writes are not transactional; consistency
      relies on a single active runner per lane
    - **Durable writes:** Every write is committed before returning

Architecture:
    ::

        settings table (core_settings)
        ┌──────────────────────────────────────┬───────────────────────┐
        │ key                                  │ value                 │
        ├──────────────────────────────────────┼───────────────────────┤
        │ project.rabbitmq_last_run_start      │ 2026-10-19T10:00:00+… │
        │ project.rabbitmq_last_run_end        │ NULL  (in flight)     │
        └──────────────────────────────────────┴───────────────────────┘

            RunStateStore(store, "project.rabbitmq")
              .get()            -> RunState(last_started_at, last_ended_at)
              .set_start(ts)
              .set_end(ts|None)

Tags:
    run-state, persistence, crash-recovery, runguard

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from runguard.core.errors import StorageError
from runguard.core.logging import get_logger
from runguard.core.protocols import SettingsStore

logger = get_logger(__name__)


def format_timestamp(value: datetime) -> str:
    """Serialize a timestamp as ISO-8601 UTC with second precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="seconds")


def parse_timestamp(raw: str | None) -> datetime | None:
    """
    Parse a stored timestamp.

    Accepts ISO-8601 with or without offset and the legacy
    ``YYYY-MM-DD HH:MM:SS`` form; naive values are taken as UTC.
    Empty values mean "absent".
    """
    if raw is None or not raw.strip():
        return None
    try:
        parsed = datetime.fromisoformat(raw.strip())
    except ValueError as e:
        raise StorageError(f"Malformed timestamp in settings: {raw!r}", cause=e) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True)
class RunState:
    """Last cycle markers of a lane.

    A start marker with no end marker denotes an in-flight or crashed cycle.
    Any end marker counts as a clean end, matching the run gate.
    """

    last_started_at: datetime | None = None
    last_ended_at: datetime | None = None

    @property
    def in_flight(self) -> bool:
        """True when a start marker exists without an end marker."""
        if self.last_started_at is None:
            return False
        return self.last_ended_at is None

    def to_dict(self) -> dict[str, str | bool | None]:
        return {
            "last_started_at": format_timestamp(self.last_started_at) if self.last_started_at else None,
            "last_ended_at": format_timestamp(self.last_ended_at) if self.last_ended_at else None,
            "in_flight": self.in_flight,
        }


class RunStateStore:
    """Persists the start/end markers of one lane in a settings store.

    Keys are ``<prefix>_last_run_start`` and ``<prefix>_last_run_end``.
    """

    def __init__(self, store: SettingsStore, key_prefix: str) -> None:
        self.store = store
        self.key_prefix = key_prefix

    @property
    def start_key(self) -> str:
        return f"{self.key_prefix}_last_run_start"

    @property
    def end_key(self) -> str:
        return f"{self.key_prefix}_last_run_end"

    def get(self) -> RunState:
        return RunState(
            last_started_at=parse_timestamp(self.store.get_setting(self.start_key)),
            last_ended_at=parse_timestamp(self.store.get_setting(self.end_key)),
        )

    def set_start(self, when: datetime) -> None:
        self.store.save_setting(self.start_key, format_timestamp(when))
        logger.debug("run_state.start_marked", key=self.start_key, at=format_timestamp(when))

    def set_end(self, when: datetime | None) -> None:
        self.store.save_setting(self.end_key, format_timestamp(when) if when else None)
        logger.debug("run_state.end_marked", key=self.end_key, cleared=when is None)

    def reset(self) -> None:
        """Clear both markers (manual recovery)."""
        self.store.save_setting(self.start_key, None)
        self.store.save_setting(self.end_key, None)
        logger.info("run_state.reset", key_prefix=self.key_prefix)


__all__ = ["RunState", "RunStateStore", "format_timestamp", "parse_timestamp"]
