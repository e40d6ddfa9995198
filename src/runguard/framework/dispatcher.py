"""
Scheduler entry point: batch or single-job dispatch.

Batch mode (no job id) clears old log entries and runs every due job.
Single mode looks one job up, clears old log entries, and runs it once
with no-op logging forced on.  Unlike :class:`~runguard.framework.runner.CycleRunner`
nothing here is gated; the job engine owns overlap protection.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from runguard.core.alerts import Alerter
from runguard.core.errors import JobNotFoundError, RunGuardError, wrap_error
from runguard.core.logging import bind_context, get_logger, unbind_context
from runguard.core.protocols import JobRepository, Scheduler

logger = get_logger(__name__)

SOURCE = "scheduler"


@dataclass(frozen=True)
class JobInvocation:
    """Which job to run; an empty ``job_id`` means batch mode."""

    job_id: str | None = None
    project_id: str | None = None
    force_single_run: bool = True

    @property
    def single(self) -> bool:
        return bool(self.job_id)


@dataclass
class DispatchResult:
    exit_code: int
    lines: list[str] = field(default_factory=list)
    error: RunGuardError | None = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class JobDispatcher:
    """Runs the scheduler for one CLI invocation and maps failures to exit codes."""

    def __init__(self, scheduler: Scheduler, repository: JobRepository, alerter: Alerter | None = None) -> None:
        self.scheduler = scheduler
        self.repository = repository
        self.alerter = alerter or Alerter()

    def dispatch(self, invocation: JobInvocation) -> DispatchResult:
        bind_context(job_id=invocation.job_id, project_id=invocation.project_id)
        try:
            if invocation.single:
                return self._dispatch_single(invocation)
            return self._dispatch_batch()
        except Exception as e:
            error = wrap_error(e)
            logger.error("dispatch.failed", **error.to_dict())
            self.alerter.error(error, source=SOURCE)
            return DispatchResult(exit_code=1, lines=[error.message], error=error)
        finally:
            unbind_context("job_id", "project_id")

    def _dispatch_batch(self) -> DispatchResult:
        self.scheduler.clear_old_log_entries()
        lines = self.scheduler.run()
        logger.info("dispatch.batch_completed", lines=len(lines))
        return DispatchResult(exit_code=0, lines=list(lines))

    def _dispatch_single(self, invocation: JobInvocation) -> DispatchResult:
        job = self.repository.find(invocation.job_id, invocation.project_id)
        if job is None:
            error = JobNotFoundError(invocation.job_id, invocation.project_id)
            logger.error("dispatch.job_not_found", **error.to_dict())
            self.alerter.error(error, source=SOURCE)
            # Cleanup is independent of the lookup.
            self.scheduler.clear_old_log_entries()
            return DispatchResult(exit_code=1, lines=[error.message], error=error)

        self.scheduler.clear_old_log_entries()
        lines = self.scheduler.run_job(job, log_noop=invocation.force_single_run)
        logger.info("dispatch.job_completed", lines=len(lines))
        return DispatchResult(exit_code=0, lines=list(lines))


__all__ = ["JobInvocation", "DispatchResult", "JobDispatcher"]
