"""
CLI: ``runguard scheduler`` - run scheduled jobs.
"""

from __future__ import annotations

import typer

from runguard.cli.utils import guard_errors, make_context, print_error, print_line

app = typer.Typer(no_args_is_help=True)


@app.command("run")
def run_scheduler(
    job_id: str | None = typer.Option(None, "--job-id", "--jobId", help="Run only this job, even if not due"),
    project_id: str | None = typer.Option(None, "--project-id", "--projectId", help="Project owning the job"),
    config: str | None = typer.Option(None, "--config", "-c", help="Path to runguard.yaml"),
    database: str | None = typer.Option(None, "--database", "-d", help="Settings database path"),
) -> None:
    """Run due jobs, or a single job when --job-id is given."""
    from runguard.framework.dispatcher import JobDispatcher, JobInvocation
    from runguard.framework.jobs import SqliteJobRepository, UnitScheduler

    with guard_errors():
        ctx = make_context(config, database)
        try:
            repository = SqliteJobRepository(ctx.conn)
            scheduler = UnitScheduler(
                repository,
                ctx.registry,
                log_retention_days=ctx.settings.log_retention_days,
            )
            dispatcher = JobDispatcher(scheduler, repository, ctx.alerter)
            result = dispatcher.dispatch(JobInvocation(job_id=job_id, project_id=project_id))
        finally:
            ctx.close()

    if result.ok:
        for line in result.lines:
            print_line(line)
    else:
        for line in result.lines:
            print_error(line)
    raise typer.Exit(code=result.exit_code)
