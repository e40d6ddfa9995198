"""Tests for ``runguard lane`` sub-commands."""

from datetime import UTC, datetime, timedelta

from typer.testing import CliRunner

from runguard.cli.app import app
from runguard.core.run_state import RunState, RunStateStore

runner = CliRunner()


class TestLaneFlag:
    def test_enable_and_disable(self, cli_args, open_store):
        result = runner.invoke(app, ["lane", "enable", "rabbitmq-consumers", *cli_args])
        assert result.exit_code == 0, result.output
        assert open_store().get_setting("project.rabbitmq_active") == "1"

        result = runner.invoke(app, ["lane", "disable", "rabbitmq-consumers", *cli_args])
        assert result.exit_code == 0, result.output
        assert open_store().get_setting("project.rabbitmq_active") == "0"

    def test_lane_without_flag(self, cli_args):
        result = runner.invoke(app, ["lane", "enable", "failing", *cli_args])
        assert result.exit_code == 1
        assert "has no enabled_key" in result.output


class TestLaneStatus:
    def test_fresh_lane(self, cli_args):
        result = runner.invoke(app, ["lane", "status", "rabbitmq-consumers", *cli_args])
        assert result.exit_code == 0, result.output
        assert "first run" in result.output
        assert "orders-queue, emails-queue" in result.output

    def test_in_flight_json(self, cli_args, open_store):
        RunStateStore(open_store(), "project.rabbitmq").set_start(datetime.now(UTC) - timedelta(minutes=1))
        result = runner.invoke(app, ["lane", "status", "--json", *cli_args])
        assert result.exit_code == 0, result.output
        assert '"in_flight": true' in result.output
        assert '"allowed": false' in result.output


class TestLaneReset:
    def test_reset_clears_markers(self, cli_args, open_store):
        store = RunStateStore(open_store(), "project.rabbitmq")
        store.set_start(datetime.now(UTC))

        result = runner.invoke(app, ["lane", "reset", "rabbitmq-consumers", *cli_args])

        assert result.exit_code == 0, result.output
        assert RunStateStore(open_store(), "project.rabbitmq").get() == RunState()
