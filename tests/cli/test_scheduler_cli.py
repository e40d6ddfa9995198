"""Tests for ``runguard scheduler run``."""

from typer.testing import CliRunner

from runguard.cli.app import app
from runguard.core.connection import SqliteConnection
from runguard.framework.jobs import JobDefinition, SqliteJobRepository

runner = CliRunner()


def add_job(db_path, **kwargs):
    conn = SqliteConnection(db_path)
    try:
        repo = SqliteJobRepository(conn)
        repo.add(JobDefinition(**kwargs))
    finally:
        conn.close()


def job_log(db_path, job_id):
    conn = SqliteConnection(db_path)
    try:
        return SqliteJobRepository(conn).list_log(job_id)
    finally:
        conn.close()


class TestSchedulerRun:
    def test_batch_without_jobs(self, cli_args):
        result = runner.invoke(app, ["scheduler", "run", *cli_args])
        assert result.exit_code == 0, result.output

    def test_batch_runs_due_jobs(self, cli_args, db_path):
        add_job(db_path, job_id="1", name="Feed export", unit_name="feed-export")
        result = runner.invoke(app, ["scheduler", "run", *cli_args])
        assert result.exit_code == 0, result.output
        assert "exported 3 products" in result.output

    def test_single_job_reports_noop(self, cli_args, db_path):
        add_job(db_path, job_id="7", project_id="42", name="Stock sync", unit_name="idle")
        result = runner.invoke(app, ["scheduler", "run", "--job-id", "7", "--project-id", "42", *cli_args])
        assert result.exit_code == 0, result.output
        assert "Stock sync: nothing to do" in result.output
        assert job_log(db_path, "7") == ["Stock sync: nothing to do"]

    def test_legacy_option_names(self, cli_args, db_path):
        add_job(db_path, job_id="7", name="Stock sync", unit_name="idle")
        result = runner.invoke(app, ["scheduler", "run", "--jobId", "7", *cli_args])
        assert result.exit_code == 0, result.output

    def test_job_not_found(self, cli_args):
        result = runner.invoke(app, ["scheduler", "run", "--job-id", "404", *cli_args])
        assert result.exit_code == 1
        assert "Job not found" in result.output

    def test_job_scoped_to_other_project(self, cli_args, db_path):
        add_job(db_path, job_id="7", project_id="42", name="Stock sync", unit_name="idle")
        result = runner.invoke(app, ["scheduler", "run", "--job-id", "7", "--project-id", "1", *cli_args])
        assert result.exit_code == 1
        assert "Job not found" in result.output

    def test_failing_job(self, cli_args, db_path):
        add_job(db_path, job_id="9", name="Broken", unit_name="broken")
        result = runner.invoke(app, ["scheduler", "run", "--job-id", "9", *cli_args])
        assert result.exit_code == 1
        assert "RuntimeError: boom" in result.output
        assert job_log(db_path, "9") == ["Broken FAILED: RuntimeError: boom"]
