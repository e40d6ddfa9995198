"""
Canonical protocol definitions for runguard.

Modules depend on these shapes, not on concrete classes, so the runner and
dispatcher can be exercised with in-memory fakes and the message-queue or
job-engine collaborators stay outside the package.

Architecture:
    ::

        protocols.py
        ├── Connection      : sync DB protocol (sqlite3 adapter)
        ├── SettingsStore   : key/value settings table
        ├── ExecutionUnit   : named runnable with a time budget
        ├── Consumer        : message consumer wrapped by ConsumerUnit
        ├── JobRepository   : scheduled job definitions + job log
        └── Scheduler       : job engine driven by JobDispatcher

Tags:
    protocol, contracts, runguard
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from runguard.framework.jobs import JobDefinition


@runtime_checkable
class Connection(Protocol):
    """Minimal sync database connection (satisfied by SqliteConnection)."""

    def execute(self, sql: str, params: tuple = ()) -> Any: ...

    def fetchone(self) -> Any: ...

    def fetchall(self) -> list[Any]: ...

    def commit(self) -> None: ...


@runtime_checkable
class SettingsStore(Protocol):
    """Key/value settings store shared with the application.

    Values are strings; ``None`` clears a key.
    """

    def get_setting(self, key: str) -> str | None: ...

    def save_setting(self, key: str, value: str | None) -> None: ...


@runtime_checkable
class ExecutionUnit(Protocol):
    """A named runnable executed inside a cycle.

    ``run`` receives a cooperative time budget in seconds and may return
    human-readable messages. Implementations may also provide ``close()``,
    which the runner calls after every run, successful or not.
    """

    name: str

    def run(self, budget_seconds: int) -> Iterable[str] | None: ...


@runtime_checkable
class Consumer(Protocol):
    """Message consumer as exposed by a queue client."""

    def consume(self, seconds: int) -> Any: ...

    def stop(self) -> None: ...


@runtime_checkable
class JobRepository(Protocol):
    """Lookup of scheduled job definitions."""

    def find(self, job_id: str, project_id: str | None = None) -> JobDefinition | None: ...

    def list_enabled(self) -> list[JobDefinition]: ...


@runtime_checkable
class Scheduler(Protocol):
    """External job engine driven by :class:`~runguard.framework.dispatcher.JobDispatcher`."""

    def clear_old_log_entries(self, now: datetime | None = None) -> int: ...

    def run(self, now: datetime | None = None) -> list[str]: ...

    def run_job(
        self,
        job: JobDefinition,
        log_noop: bool = False,
        now: datetime | None = None,
    ) -> list[str]: ...


__all__ = [
    "Connection",
    "SettingsStore",
    "ExecutionUnit",
    "Consumer",
    "JobRepository",
    "Scheduler",
]
