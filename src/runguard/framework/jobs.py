"""
Minimal job engine behind ``runguard scheduler run``.

Manifesto:
    Job business logic belongs to the application; this module only stores
    job definitions, decides which are due, runs them through the unit
    registry, and keeps a short job log.  Overlap protection is left to the
    external trigger: the scheduler path is not gated.

Architecture:
    ::

        ┌──────────────────────────┐     ┌──────────────────────────┐
        │   SqliteJobRepository    │     │       UnitRegistry       │
        │  core_scheduler_jobs     │     │  unit_name → unit        │
        │  core_scheduler_log      │     └────────────┬─────────────┘
        └────────────┬─────────────┘                  │
                     │                                │
                     ▼                                ▼
        ┌─────────────────────────────────────────────────────────┐
        │                     UnitScheduler                        │
        │  clear_old_log_entries(now)  retention cleanup           │
        │  run(now)                    every due job (croniter)    │
        │  run_job(job, log_noop)      one job, messages returned  │
        └─────────────────────────────────────────────────────────┘

Tags:
    scheduler, jobs, cron, croniter, repository, runguard

Doc-Types:
    api-reference
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from croniter import croniter

from runguard.core.errors import ConfigError, RunGuardError, StorageError, UnitExecutionError
from runguard.core.logging import bind_context, get_logger, unbind_context
from runguard.core.protocols import Connection
from runguard.core.run_state import format_timestamp, parse_timestamp
from runguard.core.schema import create_core_tables
from runguard.framework.registry import UnitRegistry

logger = get_logger(__name__)


@dataclass
class JobDefinition:
    """A scheduled job: which unit to run, how often, with what budget."""

    job_id: str
    name: str
    unit_name: str
    project_id: str | None = None
    cron_expression: str = "* * * * *"
    budget_seconds: int = 1
    enabled: bool = True
    last_run_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "project_id": self.project_id,
            "name": self.name,
            "unit_name": self.unit_name,
            "cron_expression": self.cron_expression,
            "budget_seconds": self.budget_seconds,
            "enabled": self.enabled,
            "last_run_at": format_timestamp(self.last_run_at) if self.last_run_at else None,
        }


@contextmanager
def _storage_errors(action: str, **context: Any) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as e:
        raise StorageError(f"Cannot {action}: {e}", cause=e).with_context(**context) from e


class SqliteJobRepository:
    """Job definitions and job log in SQLite.

    Example:
        >>> repo = SqliteJobRepository(SqliteConnection(":memory:"))
        >>> job = repo.add(JobDefinition(job_id="7", name="Feed export", unit_name="feed-export"))
        >>> repo.find("7").unit_name
        'feed-export'
    """

    def __init__(self, conn: Connection, *, create_tables: bool = True) -> None:
        self.conn = conn
        if create_tables:
            with _storage_errors("initialise scheduler tables"):
                create_core_tables(conn)

    @staticmethod
    def _row_to_job(row: Any) -> JobDefinition:
        return JobDefinition(
            job_id=row["job_id"],
            project_id=row["project_id"],
            name=row["name"],
            unit_name=row["unit_name"],
            cron_expression=row["cron_expression"],
            budget_seconds=row["budget_seconds"],
            enabled=bool(row["enabled"]),
            last_run_at=parse_timestamp(row["last_run_at"]),
        )

    # === Definitions ===

    def find(self, job_id: str, project_id: str | None = None) -> JobDefinition | None:
        """Look up one job; ``project_id`` narrows the lookup when given."""
        sql = "SELECT * FROM core_scheduler_jobs WHERE job_id = ?"
        params: tuple = (job_id,)
        if project_id is not None:
            sql += " AND project_id = ?"
            params = (job_id, project_id)
        with _storage_errors("read job", job_id=job_id):
            self.conn.execute(sql, params)
            row = self.conn.fetchone()
        return self._row_to_job(row) if row else None

    def list_enabled(self) -> list[JobDefinition]:
        with _storage_errors("list jobs"):
            self.conn.execute("SELECT * FROM core_scheduler_jobs WHERE enabled = 1 ORDER BY job_id")
            rows = self.conn.fetchall()
        return [self._row_to_job(row) for row in rows]

    def add(self, job: JobDefinition) -> JobDefinition:
        with _storage_errors("add job", job_id=job.job_id):
            self.conn.execute(
                """
                INSERT INTO core_scheduler_jobs (
                    job_id, project_id, name, unit_name, cron_expression,
                    budget_seconds, enabled, last_run_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    job.job_id,
                    job.project_id,
                    job.name,
                    job.unit_name,
                    job.cron_expression,
                    job.budget_seconds,
                    1 if job.enabled else 0,
                    format_timestamp(job.last_run_at) if job.last_run_at else None,
                ),
            )
            self.conn.commit()
        logger.debug("job.added", job_id=job.job_id, unit=job.unit_name)
        return job

    def mark_run(self, job_id: str, when: datetime) -> None:
        with _storage_errors("mark job run", job_id=job_id):
            self.conn.execute(
                "UPDATE core_scheduler_jobs SET last_run_at = ? WHERE job_id = ?",
                (format_timestamp(when), job_id),
            )
            self.conn.commit()

    # === Job log ===

    def append_log(self, job_id: str, message: str, when: datetime) -> None:
        with _storage_errors("write job log", job_id=job_id):
            self.conn.execute(
                "INSERT INTO core_scheduler_log (job_id, message, created_at) VALUES (?, ?, ?)",
                (job_id, message, format_timestamp(when)),
            )
            self.conn.commit()

    def delete_log_older_than(self, cutoff: datetime) -> int:
        with _storage_errors("clear job log"):
            cursor = self.conn.execute(
                "DELETE FROM core_scheduler_log WHERE created_at < ?",
                (format_timestamp(cutoff),),
            )
            self.conn.commit()
        return cursor.rowcount

    def list_log(self, job_id: str) -> list[str]:
        with _storage_errors("read job log", job_id=job_id):
            self.conn.execute(
                "SELECT message FROM core_scheduler_log WHERE job_id = ? ORDER BY id",
                (job_id,),
            )
            rows = self.conn.fetchall()
        return [row["message"] for row in rows]


class UnitScheduler:
    """Runs job definitions through registered units."""

    def __init__(
        self,
        repository: SqliteJobRepository,
        registry: UnitRegistry,
        *,
        log_retention_days: int = 30,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.repository = repository
        self.registry = registry
        self.log_retention_days = log_retention_days
        self.clock = clock or (lambda: datetime.now(UTC))

    def is_due(self, job: JobDefinition, now: datetime) -> bool:
        """A job is due once its next fire time after ``last_run_at`` has passed."""
        if job.last_run_at is None:
            return True
        try:
            next_run = croniter(job.cron_expression, job.last_run_at).get_next(datetime)
        except (ValueError, KeyError) as e:
            raise ConfigError(
                f"Invalid cron expression for job {job.job_id}: {job.cron_expression}", cause=e
            ).with_context(job_id=job.job_id) from e
        return next_run <= now

    def clear_old_log_entries(self, now: datetime | None = None) -> int:
        cutoff = (now or self.clock()) - timedelta(days=self.log_retention_days)
        deleted = self.repository.delete_log_older_than(cutoff)
        if deleted:
            logger.info("scheduler.log_cleared", deleted=deleted, cutoff=format_timestamp(cutoff))
        return deleted

    def run(self, now: datetime | None = None) -> list[str]:
        """Run every due job; one failing job does not stop the others."""
        now = now or self.clock()
        lines: list[str] = []
        for job in self.repository.list_enabled():
            try:
                if not self.is_due(job, now):
                    continue
                lines.extend(self.run_job(job, now=now))
            except Exception as e:
                lines.append(f"{job.name} FAILED: {e}")
                logger.error("scheduler.job_failed", job_id=job.job_id, error=str(e))
        return lines

    def run_job(self, job: JobDefinition, log_noop: bool = False, now: datetime | None = None) -> list[str]:
        """
        Run one job and return its log messages.

        With ``log_noop`` a job that produced nothing still reports
        ``"<name>: nothing to do"``.  Any failure, including an unknown unit or a
        failing ``close()``, is recorded in the job log and marks the job as
        run before it is re-raised.
        """
        now = now or self.clock()
        bind_context(job_id=job.job_id)
        try:
            try:
                messages = self._execute(job)
            except RunGuardError as error:
                error.with_context(job_id=job.job_id)
                # Failed attempts still count as a run so the job keeps its cron cadence.
                self.repository.append_log(job.job_id, f"{job.name} FAILED: {error.message}", now)
                self.repository.mark_run(job.job_id, now)
                logger.error("scheduler.unit_failed", unit=job.unit_name, error=error.message)
                raise

            if not messages and log_noop:
                messages = [f"{job.name}: nothing to do"]
            for message in messages:
                self.repository.append_log(job.job_id, message, now)
            self.repository.mark_run(job.job_id, now)
            logger.info("scheduler.job_completed", unit=job.unit_name, messages=len(messages))
            return messages
        finally:
            unbind_context("job_id")

    def _execute(self, job: JobDefinition) -> list[str]:
        """Resolve and run the job's unit, then close it; the run error wins over a close error."""
        unit = self.registry.resolve(job.unit_name)
        messages: list[str] = []
        run_error: UnitExecutionError | None = None
        try:
            messages = [str(m) for m in unit.run(job.budget_seconds) or ()]
        except Exception as e:
            run_error = UnitExecutionError(job.unit_name, e)
        finally:
            close_error = self._close_unit(unit, job.unit_name)
        error = run_error or close_error
        if error is not None:
            raise error
        return messages

    @staticmethod
    def _close_unit(unit: Any, unit_name: str) -> UnitExecutionError | None:
        close = getattr(unit, "close", None)
        if not callable(close):
            return None
        try:
            close()
        except Exception as e:
            logger.error("scheduler.unit_close_failed", unit=unit_name, error=str(e))
            return UnitExecutionError(unit_name, e)
        return None


__all__ = ["JobDefinition", "SqliteJobRepository", "UnitScheduler"]
