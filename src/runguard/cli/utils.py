"""
CLI utility helpers: context construction and output formatting.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console

from runguard.core.alerts import Alerter, build_alerter
from runguard.core.config import GuardConfig, RunGuardSettings, get_settings, load_config
from runguard.core.connection import SqliteConnection
from runguard.core.errors import ConfigError, RunGuardError, StorageError
from runguard.core.settings_store import SqliteSettingsStore
from runguard.framework.registry import UnitRegistry, load_unit_modules

console = Console()
err_console = Console(stderr=True)


# ── Context ──────────────────────────────────────────────────────────────


@dataclass
class GuardContext:
    """Everything one CLI invocation needs, built once at start-up."""

    settings: RunGuardSettings
    conn: SqliteConnection
    store: SqliteSettingsStore
    config: GuardConfig
    registry: UnitRegistry
    alerter: Alerter

    def close(self) -> None:
        self.conn.close()


def make_context(config: str | None = None, database: str | None = None) -> GuardContext:
    """Load settings and config, open the database, and populate the registry.

    Raises:
        RunGuardError: ConfigError for a bad config or unit module,
            StorageError when the settings table cannot be opened.
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        raise ConfigError(f"Invalid RUNGUARD_* settings: {e}", cause=e) from e
    guard_config = load_config(config or settings.config_file)
    db_path = database or settings.database_path
    try:
        conn = SqliteConnection(db_path)
    except (sqlite3.Error, OSError) as e:
        raise StorageError(f"Cannot open database {db_path}: {e}", cause=e).with_context(database=db_path) from e
    try:
        store = SqliteSettingsStore(conn)
        registry = load_unit_modules(UnitRegistry(), guard_config.modules)
    except RunGuardError:
        conn.close()
        raise
    return GuardContext(
        settings=settings,
        conn=conn,
        store=store,
        config=guard_config,
        registry=registry,
        alerter=build_alerter(settings.alert_webhook_url),
    )


@contextmanager
def guard_errors() -> Iterator[None]:
    """Render a ``RunGuardError`` as one red line and exit 1."""
    try:
        yield
    except RunGuardError as e:
        print_error(e.summary())
        raise typer.Exit(code=1) from e


# ── Output helpers ───────────────────────────────────────────────────────


def print_line(line: str, *, ok: bool = True) -> None:
    console.print(line, style="green" if ok else "red", markup=False, highlight=False, soft_wrap=True)


def print_error(message: str) -> None:
    err_console.print(message, style="bold red", markup=False, highlight=False, soft_wrap=True)


def print_dict(data: dict[str, Any], *, title: str = "", as_json: bool = False) -> None:
    """Render a dict as key-value pairs, or as JSON."""
    if as_json:
        console.print_json(json.dumps(data, default=str))
        return
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}", highlight=False, soft_wrap=True)
