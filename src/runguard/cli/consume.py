"""
CLI: ``runguard consume`` - one gated cycle of a lane.

Meant to be run by cron every minute::

    * * * * * runguard consume
    * * * * * runguard consume orders-queue 30
"""

from __future__ import annotations

import typer

from runguard.cli.utils import guard_errors, make_context, print_error, print_line
from runguard.core.config import DEFAULT_LANE


def consume(
    unit: str | None = typer.Argument(None, help="Run only this unit instead of the lane's default set"),
    seconds: int | None = typer.Argument(None, min=0, help="Time budget per unit in seconds"),
    lane: str = typer.Option(DEFAULT_LANE, "--lane", "-l", help="Lane to run"),
    config: str | None = typer.Option(None, "--config", "-c", help="Path to runguard.yaml"),
    database: str | None = typer.Option(None, "--database", "-d", help="Settings database path"),
) -> None:
    """Run every unit of a lane once, unless the lane is disabled or still busy."""
    from runguard.framework.runner import CycleRunner

    with guard_errors():
        ctx = make_context(config, database)
        try:
            lane_config = ctx.config.lane(lane)
            runner = CycleRunner(
                ctx.store,
                ctx.registry,
                grace_seconds=ctx.settings.grace_seconds,
                default_budget_seconds=ctx.settings.default_budget_seconds,
                alerter=ctx.alerter,
            )
            result = runner.run_cycle(lane_config, requested_unit=unit, budget_seconds=seconds)
        finally:
            ctx.close()

    for outcome in result.outcomes:
        print_line(outcome.line(), ok=outcome.success)
    if result.error is not None:
        print_error(result.error.summary())
    raise typer.Exit(code=result.exit_code)
