"""
CLI: ``runguard lane`` - inspect and operate a lane's flag and markers.
"""

from __future__ import annotations

import typer

from runguard.cli.utils import console, guard_errors, make_context, print_dict
from runguard.core.config import DEFAULT_LANE, LaneConfig
from runguard.core.errors import ConfigError

app = typer.Typer(no_args_is_help=True)


def _require_flag(lane: LaneConfig) -> str:
    if lane.enabled_key is None:
        raise ConfigError(f"Lane {lane.name} has no enabled_key; it is always enabled").with_context(lane=lane.name)
    return lane.enabled_key


@app.command("status")
def lane_status(
    lane: str = typer.Argument(DEFAULT_LANE, help="Lane name"),
    config: str | None = typer.Option(None, "--config", "-c"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the lane's flag, markers, and what the gate would decide now."""
    from runguard.framework.runner import CycleRunner, flag_enabled

    with guard_errors():
        ctx = make_context(config, database)
        try:
            lane_config = ctx.config.lane(lane)
            runner = CycleRunner(ctx.store, ctx.registry, grace_seconds=ctx.settings.grace_seconds)
            state, decision = runner.describe(lane_config)
            enabled = flag_enabled(ctx.store.get_setting(lane_config.enabled_key)) if lane_config.enabled_key else True
        finally:
            ctx.close()

    data = {
        "lane": lane_config.name,
        "enabled": enabled,
        "units": ", ".join(lane_config.units) or "-",
        **state.to_dict(),
        **decision.to_dict(),
    }
    print_dict(data, title=f"Lane: {lane_config.name}", as_json=json_out)


def _set_flag(lane: str, value: str, config: str | None, database: str | None) -> str:
    with guard_errors():
        ctx = make_context(config, database)
        try:
            key = _require_flag(ctx.config.lane(lane))
            ctx.store.save_setting(key, value)
        finally:
            ctx.close()
    return key


@app.command("enable")
def lane_enable(
    lane: str = typer.Argument(DEFAULT_LANE, help="Lane name"),
    config: str | None = typer.Option(None, "--config", "-c"),
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Switch the lane's feature flag on."""
    key = _set_flag(lane, "1", config, database)
    console.print(f"[green]Lane {lane} enabled[/green] ({key}=1)", highlight=False)


@app.command("disable")
def lane_disable(
    lane: str = typer.Argument(DEFAULT_LANE, help="Lane name"),
    config: str | None = typer.Option(None, "--config", "-c"),
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Switch the lane's feature flag off."""
    key = _set_flag(lane, "0", config, database)
    console.print(f"[yellow]Lane {lane} disabled[/yellow] ({key}=0)", highlight=False)


@app.command("reset")
def lane_reset(
    lane: str = typer.Argument(DEFAULT_LANE, help="Lane name"),
    config: str | None = typer.Option(None, "--config", "-c"),
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Clear both run markers so the next trigger may start immediately."""
    from runguard.core.run_state import RunStateStore

    with guard_errors():
        ctx = make_context(config, database)
        try:
            lane_config = ctx.config.lane(lane)
            RunStateStore(ctx.store, lane_config.state_key_prefix).reset()
        finally:
            ctx.close()
    console.print(f"[green]Lane {lane} reset[/green]", highlight=False)
