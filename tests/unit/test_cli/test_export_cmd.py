"""Tests for the `commerce-export export` and `history` commands."""

import json
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from commerce_export.cli.app import app
from commerce_export.lib.datasource import InMemoryDataSource, Order
from commerce_export.schemas.export_type import ExportTypeConfig, save_export_types

runner = CliRunner()

_BUCKET = "cli-bucket"
_KEY = "WebsiteSales/WebSales-14-03-2025.csv"


def _configure(cli_env: Path, *types: ExportTypeConfig) -> None:
    save_export_types(cli_env / "export_types.json", list(types))


class TestExportRun:
    """Tests for export run."""

    def test_run_uploads_file(
        self,
        cli_env: Path,
        s3_client,
        sample_orders: list[Order],
        order_export_type: ExportTypeConfig,
    ) -> None:
        """A run for a given day uploads the file and reports success."""
        _configure(cli_env, order_export_type)
        with patch(
            "commerce_export.cli.runtime.create_data_source",
            return_value=InMemoryDataSource(orders=sample_orders),
        ):
            result = runner.invoke(app, ["export", "run", "--date", "2025-03-14"])

        assert result.exit_code == 0, result.output
        assert "Export completed: 1/1 exports succeeded" in result.output
        body = s3_client.get_object(Bucket=_BUCKET, Key=_KEY)["Body"].read().decode()
        assert body.startswith("Order ID,Item,Qty\n")

        history = runner.invoke(app, ["history", "list", "--json"])
        entries = json.loads(history.stdout)
        assert [e["file_name"] for e in entries] == ["WebSales-14-03-2025.csv"]
        assert entries[0]["status"] == "completed"
        assert entries[0]["object_key"] == _KEY

    def test_failed_run_exits_nonzero(
        self,
        cli_env: Path,
        s3_client,
        order_export_type: ExportTypeConfig,
    ) -> None:
        """A day without data is a failed run and schedules a retry."""
        _configure(cli_env, order_export_type)
        with patch("commerce_export.cli.runtime.create_data_source", return_value=InMemoryDataSource()):
            result = runner.invoke(app, ["export", "run", "--date", "2025-03-14"])

        assert result.exit_code == 1
        assert "No file produced" in result.output
        assert "Export failed: 0/1 exports succeeded" in result.output
        assert "A retry has been scheduled." in result.output
        jobs = json.loads((cli_env / "jobs.json").read_text())["jobs"]
        assert [j["name"] for j in jobs] == ["retry:automated"]

    def test_missing_store_credentials(self, cli_env: Path, order_export_type: ExportTypeConfig) -> None:
        """Without a configured store the command fails with zero successes."""
        _configure(cli_env, order_export_type)

        result = runner.invoke(app, ["export", "run"])

        assert result.exit_code == 1
        assert "Error: Export failed: Store URL and REST API credentials must be configured" in result.output
        assert "0 exports succeeded" in result.output

    def test_invalid_date(self, cli_env: Path) -> None:
        """A malformed date is a usage error."""
        result = runner.invoke(app, ["export", "run", "--date", "14/03/2025"])

        assert result.exit_code == 2


class TestExportManual:
    """Tests for export manual."""

    def test_manual_range_for_selected_type(
        self,
        cli_env: Path,
        s3_client,
        sample_orders: list[Order],
        order_export_type: ExportTypeConfig,
        second_export_type: ExportTypeConfig,
    ) -> None:
        """Only the selected type runs, once per day in the range."""
        _configure(cli_env, order_export_type, second_export_type)
        with patch(
            "commerce_export.cli.runtime.create_data_source",
            return_value=InMemoryDataSource(orders=sample_orders),
        ):
            result = runner.invoke(
                app,
                ["export", "manual", "--date", "2025-03-14", "--end-date", "2025-03-15", "--type", "web_orders"],
            )

        assert result.exit_code == 0, result.output
        assert "Export completed: 2/2 exports succeeded" in result.output
        keys = sorted(o["Key"] for o in s3_client.list_objects_v2(Bucket=_BUCKET)["Contents"])
        assert keys == ["WebsiteOrders/WebOrders-14-03-2025.csv", "WebsiteOrders/WebOrders-15-03-2025.csv"]


class TestHistoryCommands:
    """Tests for the history group."""

    def test_empty_history(self, cli_env: Path) -> None:
        """An empty ledger says so."""
        result = runner.invoke(app, ["history", "list"])

        assert result.exit_code == 0, result.output
        assert "No exports recorded." in result.output

    def test_stats_and_clear(self, cli_env: Path) -> None:
        """Statistics and clearing work on an empty ledger."""
        stats = runner.invoke(app, ["history", "stats"])
        cleared = runner.invoke(app, ["history", "clear", "--yes"])

        assert "Total exports:      0" in stats.output
        assert "Cleared 0 history entries" in cleared.output

    def test_delete_unknown(self, cli_env: Path) -> None:
        """Deleting a missing entry exits with an error."""
        result = runner.invoke(app, ["history", "delete", "export_missing"])

        assert result.exit_code == 1
        assert "No history entry export_missing" in result.output


class TestExportManualDates:
    """Date validation for export manual happens before any runtime is opened."""

    def test_empty_start_date_is_usage_error(self, cli_env: Path) -> None:
        with patch("commerce_export.cli.runtime.create_data_source") as create:
            result = runner.invoke(app, ["export", "manual", "--date", ""])

        assert result.exit_code == 2
        create.assert_not_called()

    def test_malformed_end_date_is_usage_error(self, cli_env: Path) -> None:
        with patch("commerce_export.cli.runtime.create_data_source") as create:
            result = runner.invoke(app, ["export", "manual", "--date", "2025-03-14", "--end-date", "15/03/2025"])

        assert result.exit_code == 2
        create.assert_not_called()
