"""Tests for the `commerce-export s3` and `automation` commands."""

import json
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from commerce_export.cli.app import app
from commerce_export.lib.datasource import InMemoryDataSource
from commerce_export.schemas.export_type import ExportTypeConfig, save_export_types

runner = CliRunner()


class TestS3Check:
    """Tests for s3 check."""

    def test_connected(self, cli_env: Path, s3_client) -> None:
        """Accessible buckets are listed."""
        result = runner.invoke(app, ["s3", "check"])

        assert result.exit_code == 0, result.output
        assert "Connected to S3 (1 accessible buckets)" in result.output
        assert "cli-bucket" in result.output

    def test_missing_credentials(self, cli_env: Path, monkeypatch) -> None:
        """Missing credentials fail before any network call."""
        monkeypatch.delenv("S3_SECRET_ACCESS_KEY")

        result = runner.invoke(app, ["s3", "check"])

        assert result.exit_code == 1
        assert "S3 credentials are not configured" in result.output


class TestAutomationCommands:
    """Tests for the automation group."""

    def test_setup_arms_jobs(self, cli_env: Path, s3_client, order_export_type: ExportTypeConfig) -> None:
        """Setup writes a job per enabled type and the automated run to the job table."""
        save_export_types(cli_env / "export_types.json", [order_export_type])

        result = runner.invoke(app, ["automation", "setup"])

        assert result.exit_code == 0, result.output
        assert "Scheduled 1 export jobs" in result.output
        jobs = json.loads((cli_env / "jobs.json").read_text())["jobs"]
        by_name = {j["name"]: (j["action"], j["args"]) for j in jobs}
        assert by_name == {
            "export:web_sales": ("run_export_type", {"export_type_id": "web_sales"}),
            "automated:run": ("run_automated", {}),
        }

    def test_setup_without_types(self, cli_env: Path, s3_client) -> None:
        """No configured types means nothing to arm."""
        result = runner.invoke(app, ["automation", "setup"])

        assert result.exit_code == 1
        assert "No enabled export types to schedule" in result.output

    def test_reset_retries(self, cli_env: Path) -> None:
        """Resetting with nothing pending still succeeds."""
        result = runner.invoke(app, ["automation", "reset-retries"])

        assert result.exit_code == 0, result.output
        assert "Retry state cleared" in result.output

    def test_run_due_with_nothing_due(self, cli_env: Path, order_export_type: ExportTypeConfig) -> None:
        """An empty job table runs nothing."""
        save_export_types(cli_env / "export_types.json", [order_export_type])
        with patch("commerce_export.cli.runtime.create_data_source", return_value=InMemoryDataSource()):
            result = runner.invoke(app, ["automation", "run-due"])

        assert result.exit_code == 0, result.output
        assert "No jobs due" in result.output

    def test_health_reports_issues(self, cli_env: Path) -> None:
        """A system without export types is unhealthy."""
        with patch("commerce_export.cli.runtime.create_data_source", return_value=InMemoryDataSource()):
            result = runner.invoke(app, ["automation", "health"])

        assert result.exit_code == 1
        assert "No export types configured" in result.output
