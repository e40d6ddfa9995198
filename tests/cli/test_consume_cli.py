"""Tests for ``runguard consume`` via CliRunner against a real SQLite file."""

import sys
from datetime import UTC, datetime, timedelta

from typer.testing import CliRunner

from runguard.cli.app import app
from runguard.core.run_state import RunStateStore

runner = CliRunner()


def enable(cli_args):
    result = runner.invoke(app, ["lane", "enable", "rabbitmq-consumers", *cli_args])
    assert result.exit_code == 0, result.output


class TestConsume:
    def test_disabled_by_default(self, cli_args):
        """No flag in the settings table means the lane is off."""
        result = runner.invoke(app, ["consume", *cli_args])
        assert result.exit_code == 1
        assert "DisabledError" in result.output

    def test_runs_default_units(self, cli_args, open_store):
        enable(cli_args)
        result = runner.invoke(app, ["consume", *cli_args])
        assert result.exit_code == 0, result.output
        assert "orders-queue OK" in result.output
        assert "emails-queue OK" in result.output

        state = RunStateStore(open_store(), "project.rabbitmq").get()
        assert state.last_ended_at >= state.last_started_at

    def test_single_unit_with_budget(self, cli_args):
        enable(cli_args)
        result = runner.invoke(app, ["consume", "emails-queue", "5", *cli_args])
        assert result.exit_code == 0, result.output
        assert "emails-queue OK" in result.output
        assert "orders-queue" not in result.output

    def test_unknown_unit(self, cli_args, open_store):
        enable(cli_args)
        result = runner.invoke(app, ["consume", "nope", *cli_args])
        assert result.exit_code == 1
        assert "Unknown unit: nope" in result.output
        assert RunStateStore(open_store(), "project.rabbitmq").get().last_started_at is None

    def test_throttled_while_previous_cycle_in_flight(self, cli_args, open_store):
        enable(cli_args)
        RunStateStore(open_store(), "project.rabbitmq").set_start(datetime.now(UTC) - timedelta(minutes=1))

        result = runner.invoke(app, ["consume", *cli_args])

        assert result.exit_code == 1
        assert "ThrottledError" in result.output
        assert "orders-queue OK" not in result.output

    def test_unit_failure_isolated(self, cli_args):
        result = runner.invoke(app, ["consume", "--lane", "failing", *cli_args])
        assert result.exit_code == 1
        assert "broken FAILED: RuntimeError: boom" in result.output
        assert "orders-queue OK" in result.output

    def test_unknown_lane(self, cli_args):
        result = runner.invoke(app, ["consume", "-l", "nope", *cli_args])
        assert result.exit_code == 1
        assert "Unknown lane: nope" in result.output

    def test_missing_config(self, tmp_path, db_path):
        result = runner.invoke(app, ["consume", "-c", str(tmp_path / "missing.yaml"), "-d", db_path])
        assert result.exit_code == 1
        assert "Config file not found" in result.output


class TestRootApp:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.startswith("runguard ")

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("consume", "scheduler", "lane"):
            assert command in result.output


class TestStartupErrors:
    def test_duplicate_unit_registration(self, tmp_path, db_path, monkeypatch):
        """A unit module registering a name twice yields one error line, not a traceback."""
        module_dir = tmp_path / "dup_modules"
        module_dir.mkdir()
        (module_dir / "runguard_dup_units.py").write_text(
            "def register_units(registry):\n"
            "    registry.unit('a')(lambda budget: None)\n"
            "    registry.unit('a')(lambda budget: None)\n"
        )
        monkeypatch.syspath_prepend(str(module_dir))
        monkeypatch.delitem(sys.modules, "runguard_dup_units", raising=False)
        config = tmp_path / "dup.yaml"
        config.write_text("modules: [runguard_dup_units]\nlanes:\n  rabbitmq-consumers:\n    units: [a]\n")

        result = runner.invoke(app, ["consume", "-c", str(config), "-d", db_path])

        assert result.exit_code == 1
        assert not isinstance(result.exception, ValueError)
        assert "ConfigError" in result.output
        assert "already registered" in result.output

    def test_unopenable_database(self, tmp_path, config_file):
        """A database path under a regular file is reported as a storage error."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")

        result = runner.invoke(app, ["consume", "-c", config_file, "-d", str(blocker / "guard.db")])

        assert result.exit_code == 1
        assert not isinstance(result.exception, OSError)
        assert "StorageError: Cannot open database" in result.output
