"""
Root Typer application for the runguard CLI.

Sub-commands import the framework lazily so ``runguard --help`` stays fast.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version

import typer
from typer import Typer

app = Typer(
    name="runguard",
    help="runguard - periodic execution guard for cron-triggered lanes.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        try:
            v = pkg_version("runguard")
        except PackageNotFoundError:
            from runguard import __version__ as v
        typer.echo(f"runguard {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """runguard CLI - run lanes and scheduled jobs behind a run gate."""
    from runguard.core.config import get_settings
    from runguard.core.logging import configure_logging

    settings = get_settings()
    # Each invocation owns its stderr stream.
    configure_logging(settings.log_level, settings.log_format, force=True)


# ── Sub-command registration ─────────────────────────────────────────────

from runguard.cli.consume import consume  # noqa: E402
from runguard.cli.lane import app as lane_app  # noqa: E402
from runguard.cli.scheduler import app as scheduler_app  # noqa: E402

app.command("consume")(consume)
app.add_typer(scheduler_app, name="scheduler", help="Scheduled job execution.")
app.add_typer(lane_app, name="lane", help="Lane flag and run-marker operations.")
