"""Automation service: arms the recurring export jobs and dispatches due jobs."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime

from loguru import logger

from commerce_export.core.config import Settings
from commerce_export.core.scheduler import (
    ACTION_RUN_AUTOMATED,
    ACTION_RUN_EXPORT_TYPE,
    AUTOMATED_JOB_NAME,
    RECURRING_JOB_PREFIX,
    InMemoryJobScheduler,
    JobScheduler,
    ScheduledJob,
)
from commerce_export.lib.publisher import S3Uploader
from commerce_export.schemas.export_type import ExportTypeConfig, Frequency
from commerce_export.services.export_runner import ExportRunner, RunReport


@dataclass
class AutomationSetupResult:
    """Outcome of arming the recurring export jobs."""

    success: bool
    message: str
    jobs: list[ScheduledJob] = field(default_factory=list)


def recurring_job_name(export_type_id: str) -> str:
    return f"{RECURRING_JOB_PREFIX}{export_type_id}"


def setup_automation(
    settings: Settings,
    uploader: S3Uploader,
    scheduler: JobScheduler,
    export_types: Sequence[ExportTypeConfig],
) -> AutomationSetupResult:
    """Cancel and re-arm the recurring export jobs.

    Each enabled export type gets its own job at its configured cadence.  A
    run-level job exports every enabled type at the general
    ``export_frequency``/``export_time``; it is the run that arms the hourly
    retry when everything fails, and with idempotency on it skips the types
    their own jobs already exported.

    Refuses to arm anything when S3 credentials or the bucket are missing,
    or when the S3 connection test fails.

    Args:
        settings: Application settings.
        uploader: Uploader used for the connection test.
        scheduler: Scheduler to arm.
        export_types: Configured export types.

    Returns:
        AutomationSetupResult.
    """
    if not settings.s3_configured:
        msg = "S3 credentials and bucket must be configured before automation can be set up"
        logger.error(msg)
        return AutomationSetupResult(success=False, message=msg)

    connection = uploader.test_connection()
    if not connection.success:
        msg = f"S3 connection test failed: {connection.message}"
        logger.error(msg)
        return AutomationSetupResult(success=False, message=msg)

    enabled = [t for t in export_types if t.enabled]
    if not enabled:
        msg = "No enabled export types to schedule"
        logger.error(msg)
        return AutomationSetupResult(success=False, message=msg)

    for job in scheduler.list_jobs():
        if job.name.startswith(RECURRING_JOB_PREFIX):
            scheduler.cancel(job.name)

    jobs = [
        scheduler.schedule_recurring(
            recurring_job_name(t.id),
            t.frequency,
            t.time,
            settings.tz,
            ACTION_RUN_EXPORT_TYPE,
            export_type_id=t.id,
        )
        for t in enabled
    ]
    jobs.append(
        scheduler.schedule_recurring(
            AUTOMATED_JOB_NAME,
            Frequency(settings.export_frequency),
            settings.export_time,
            settings.tz,
            ACTION_RUN_AUTOMATED,
        )
    )
    msg = (
        f"Scheduled {len(enabled)} export jobs and a {settings.export_frequency} "
        f"automated run at {settings.export_time}"
    )
    logger.info(msg)
    return AutomationSetupResult(success=True, message=msg, jobs=jobs)


async def dispatch_due_jobs(
    runner: ExportRunner,
    scheduler: InMemoryJobScheduler,
    now: datetime | None = None,
) -> list[RunReport]:
    """Execute every job that is due and return the run reports.

    A job is retired only after its run returns, so a process that dies
    mid-run leaves the job due for the next drain.

    Args:
        runner: Export runner.
        scheduler: Scheduler holding the job table.
        now: Current time (defaults to the wall clock).

    Returns:
        One RunReport per executed job, in firing order.
    """
    now = now or datetime.now(UTC)
    reports: list[RunReport] = []
    for job in scheduler.due_jobs(now):
        target = job.args.get("target_date")
        target_date = date.fromisoformat(target) if target else None
        logger.info("Dispatching job {!r} ({})", job.name, job.action)

        if job.action == ACTION_RUN_AUTOMATED:
            reports.append(await runner.run_automated(target_date))
        elif job.action == ACTION_RUN_EXPORT_TYPE:
            reports.append(await runner.run_export_type(job.args["export_type_id"], target_date))
        else:
            logger.warning("Ignoring job {!r} with unknown action {!r}", job.name, job.action)
        scheduler.complete(job, now)
    return reports
