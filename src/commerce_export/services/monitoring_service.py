"""Monitoring service: health validation and status reporting."""

from dataclasses import dataclass, field

from loguru import logger

from commerce_export.core.errors import ExportError
from commerce_export.lib.datasource import DataSourceError
from commerce_export.lib.history import ExportStatistics, RetryState
from commerce_export.lib.publisher import ConnectionTestResult, S3Uploader
from commerce_export.services.export_runner import ExportRunner

HEALTHY = "healthy"
UNHEALTHY = "unhealthy"


@dataclass
class SystemStatus:
    """Aggregated health of the export system."""

    status: str
    issues: list[str]
    s3: ConnectionTestResult
    retry_state: RetryState | None
    statistics: ExportStatistics
    jobs: list[dict[str, object]] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return self.status == HEALTHY


async def validate_export_system(runner: ExportRunner) -> list[str]:
    """Human-readable problems that would stop or degrade the next run.

    Args:
        runner: Export runner whose collaborators are inspected.

    Returns:
        List of issues; empty when everything looks fine.
    """
    issues: list[str] = []
    settings = runner.settings

    try:
        configured = runner.configured_types()
    except ExportError as exc:
        issues.append(f"Export types cannot be loaded: {exc}")
        configured = []
    else:
        if not configured:
            issues.append("No export types configured")
        elif not any(t.enabled for t in configured):
            issues.append("No export types are enabled")

    if not settings.s3_credentials_configured:
        issues.append("S3 credentials are not configured")
    if not settings.s3_bucket:
        issues.append("S3 bucket is not configured")

    try:
        await runner.data_source.check_available()
    except DataSourceError as exc:
        issues.append(f"Data source unavailable: {exc.message}")

    retry = await runner.store.get_retry_state()
    if retry is not None:
        issues.append(f"Export retry pending (attempt {retry.attempt_count}): {retry.reason}")

    return issues


async def system_status(runner: ExportRunner, uploader: S3Uploader) -> SystemStatus:
    """Combine validation, the S3 connection test, retry state, and history statistics."""
    issues = await validate_export_system(runner)
    s3 = uploader.test_connection()
    if not s3.success:
        issues.append(f"S3 connection failed: {s3.message}")

    return SystemStatus(
        status=HEALTHY if not issues else UNHEALTHY,
        issues=issues,
        s3=s3,
        retry_state=await runner.store.get_retry_state(),
        statistics=await runner.history.statistics(),
        jobs=[job.to_dict() for job in runner.scheduler.list_jobs()],
    )


async def run_health_check(runner: ExportRunner) -> list[str]:
    """Validate the system and alert when problems are found."""
    issues = await validate_export_system(runner)
    if issues:
        logger.warning("Health check found {} issues", len(issues))
        await runner.alerter.send(["health check"], "; ".join(issues))
    else:
        logger.info("Health check passed")
    return issues
