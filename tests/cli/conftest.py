"""Fixtures for CLI tests: a config file, a unit module, and a database path."""

import sys
import textwrap

import pytest

UNIT_MODULE = "runguard_cli_test_units"


@pytest.fixture
def unit_module(tmp_path, monkeypatch):
    """Importable module exposing register_units(registry)."""
    source = tmp_path / "modules" / f"{UNIT_MODULE}.py"
    source.parent.mkdir()
    source.write_text(
        textwrap.dedent(
            """
            def register_units(registry):
                registry.unit("orders-queue")(lambda budget: None)
                registry.unit("emails-queue")(lambda budget: None)
                registry.unit("idle")(lambda budget: None)
                registry.unit("feed-export")(lambda budget: ["exported 3 products"])

                @registry.unit("broken")
                def broken(budget_seconds):
                    raise RuntimeError("boom")
            """
        )
    )
    monkeypatch.syspath_prepend(str(source.parent))
    monkeypatch.delitem(sys.modules, UNIT_MODULE, raising=False)
    return UNIT_MODULE


@pytest.fixture
def config_file(tmp_path, unit_module):
    path = tmp_path / "runguard.yaml"
    path.write_text(
        textwrap.dedent(
            f"""
            modules: [{unit_module}]
            lanes:
              rabbitmq-consumers:
                enabled_key: project.rabbitmq_active
                state_key_prefix: project.rabbitmq
                units: [orders-queue, emails-queue]
              failing:
                units: [broken, orders-queue]
            """
        )
    )
    return str(path)


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "guard.db")


@pytest.fixture
def cli_args(config_file, db_path):
    """Common --config/--database options."""
    return ["--config", config_file, "--database", db_path]


@pytest.fixture
def open_store(db_path):
    """Open the CLI's database directly; closes every opened connection."""
    from runguard.core.connection import SqliteConnection
    from runguard.core.settings_store import SqliteSettingsStore

    opened = []

    def _open():
        conn = SqliteConnection(db_path)
        opened.append(conn)
        return SqliteSettingsStore(conn)

    yield _open
    for conn in opened:
        conn.close()
