"""Unit tests for health validation and status reporting."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

from commerce_export.core.config import Settings
from commerce_export.core.scheduler import InMemoryJobScheduler
from commerce_export.lib.datasource import InMemoryDataSource
from commerce_export.lib.history import RetryState
from commerce_export.lib.publisher import ConnectionTestResult
from commerce_export.schemas.export_type import ExportTypeConfig
from commerce_export.services.export_runner import ExportRunner
from commerce_export.services.history_service import ExportHistory
from commerce_export.services.monitoring_service import (
    HEALTHY,
    UNHEALTHY,
    run_health_check,
    system_status,
    validate_export_system,
)


def _make_runner(
    settings: Settings,
    history: ExportHistory,
    export_types: list[ExportTypeConfig],
    data_source: InMemoryDataSource | None = None,
) -> ExportRunner:
    alerter = MagicMock()
    alerter.send = AsyncMock()
    return ExportRunner(
        settings=settings,
        data_source=data_source or InMemoryDataSource(),
        uploader=MagicMock(),
        history=history,
        scheduler=InMemoryJobScheduler(),
        alerter=alerter,
        export_types=export_types,
    )


class TestValidateExportSystem:
    """Tests for validate_export_system."""

    async def test_healthy(
        self, settings: Settings, history: ExportHistory, order_export_type: ExportTypeConfig
    ) -> None:
        """A configured system reports no issues."""
        runner = _make_runner(settings, history, [order_export_type])
        assert await validate_export_system(runner) == []

    async def test_collects_every_problem(self, settings: Settings, history: ExportHistory) -> None:
        """Missing configuration, an unavailable source, and a pending retry are all reported."""
        broken = settings.model_copy(update={"s3_bucket": None, "s3_secret_access_key": None})
        runner = _make_runner(broken, history, [], InMemoryDataSource(available=False))
        await history.store.set_retry_state(
            RetryState(reason="Complete export failure", timestamp=datetime.now(UTC), attempt_count=2)
        )

        issues = await validate_export_system(runner)

        assert issues == [
            "No export types configured",
            "S3 credentials are not configured",
            "S3 bucket is not configured",
            "Data source unavailable: data source marked unavailable",
            "Export retry pending (attempt 2): Complete export failure",
        ]

    async def test_all_disabled(
        self, settings: Settings, history: ExportHistory, order_export_type: ExportTypeConfig
    ) -> None:
        """Types that exist but are all disabled are reported."""
        disabled = order_export_type.model_copy(update={"enabled": False})
        runner = _make_runner(settings, history, [disabled])
        assert await validate_export_system(runner) == ["No export types are enabled"]


class TestSystemStatus:
    """Tests for system_status and run_health_check."""

    async def test_status_combines_checks(
        self, settings: Settings, history: ExportHistory, order_export_type: ExportTypeConfig
    ) -> None:
        """A failed connection test makes the system unhealthy."""
        runner = _make_runner(settings, history, [order_export_type])
        uploader = MagicMock()
        rejected = ConnectionTestResult(success=False, message="S3 rejected the request: 403")
        uploader.test_connection.return_value = rejected

        status = await system_status(runner, uploader)

        assert status.status == UNHEALTHY
        assert status.healthy is False
        assert status.issues == ["S3 connection failed: S3 rejected the request: 403"]
        assert status.retry_state is None
        assert status.statistics.total_exports == 0
        assert status.jobs == []

    async def test_healthy_status(
        self, settings: Settings, history: ExportHistory, order_export_type: ExportTypeConfig
    ) -> None:
        """Everything passing reports healthy."""
        runner = _make_runner(settings, history, [order_export_type])
        uploader = MagicMock()
        uploader.test_connection.return_value = ConnectionTestResult(success=True, message="Connected", buckets=["b"])

        status = await system_status(runner, uploader)

        assert status.status == HEALTHY
        assert status.s3.buckets == ["b"]

    async def test_health_check_alerts_on_issues(self, settings: Settings, history: ExportHistory) -> None:
        """Problems found by the health check are sent as one alert."""
        runner = _make_runner(settings, history, [])

        issues = await run_health_check(runner)

        assert issues == ["No export types configured"]
        runner.alerter.send.assert_awaited_once_with(["health check"], "No export types configured")

    async def test_health_check_quiet_when_healthy(
        self, settings: Settings, history: ExportHistory, order_export_type: ExportTypeConfig
    ) -> None:
        """A healthy system sends nothing."""
        runner = _make_runner(settings, history, [order_export_type])

        assert await run_health_check(runner) == []
        runner.alerter.send.assert_not_awaited()
