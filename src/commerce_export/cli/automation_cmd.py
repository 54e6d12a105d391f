"""Automation CLI commands: scheduling, retry state, and health."""

import typer

from commerce_export.cli.runtime import export_types_loader, open_runtime, run_command
from commerce_export.core.config import get_settings

automation_app = typer.Typer(name="automation", help="Scheduled export automation.")


@automation_app.command("setup")
def setup_command() -> None:
    """Arm one recurring job per enabled export type plus the run-level automated job."""

    async def _setup() -> None:
        from commerce_export.services.automation_service import setup_automation

        settings = get_settings()
        async with open_runtime(settings, with_source=False) as runtime:
            result = setup_automation(settings, runtime.uploader, runtime.scheduler, export_types_loader(settings))

        typer.echo(result.message)
        for job in result.jobs:
            next_run = f"{job.next_run_at:%Y-%m-%d %H:%M} UTC"
            typer.echo(f"  {job.name:<30} {job.frequency} at {job.time_of_day}  next {next_run}")
        if not result.success:
            raise typer.Exit(code=1)

    run_command(_setup, "automation setup")


@automation_app.command("status")
def status_command() -> None:
    """Show overall health, retry state, scheduled jobs, and history totals."""

    async def _status() -> None:
        from commerce_export.services.monitoring_service import system_status

        async with open_runtime(get_settings()) as runtime:
            status = await system_status(runtime.require_runner(), runtime.uploader)

        typer.echo(f"Status: {status.status}")
        typer.echo(f"S3: {status.s3.message}")
        for issue in status.issues:
            typer.echo(f"  - {issue}")
        if status.retry_state is not None:
            retry = status.retry_state
            since = f"{retry.timestamp:%Y-%m-%d %H:%M}"
            typer.echo(f"Retry pending: attempt {retry.attempt_count} since {since} ({retry.reason})")
        typer.echo(f"Scheduled jobs: {len(status.jobs)}")
        for job in status.jobs:
            typer.echo(f"  {job['name']:<30} next {job['next_run_at']}")
        stats = status.statistics
        typer.echo(
            f"History: {stats.total_exports} exports, "
            f"{stats.successful_exports} successful, {stats.failed_exports} failed"
        )

    run_command(_status, "automation status")


@automation_app.command("reset-retries")
def reset_retries_command() -> None:
    """Clear the pending retry marker and its scheduled job."""

    async def _reset() -> None:
        from commerce_export.core.scheduler import RETRY_JOB_NAME

        async with open_runtime(get_settings(), with_source=False) as runtime:
            await runtime.history.store.clear_retry_state()
            cancelled = runtime.scheduler.cancel(RETRY_JOB_NAME)
        typer.echo("Retry state cleared" + (" and pending retry cancelled" if cancelled else ""))

    run_command(_reset, "automation reset-retries")


@automation_app.command("health")
def health_command() -> None:
    """Validate the export system and alert on problems."""

    async def _health() -> None:
        from commerce_export.services.monitoring_service import run_health_check

        async with open_runtime(get_settings()) as runtime:
            issues = await run_health_check(runtime.require_runner())

        if not issues:
            typer.echo("Export system healthy")
            return
        typer.echo("Export system has issues:")
        for issue in issues:
            typer.echo(f"  - {issue}")
        raise typer.Exit(code=1)

    run_command(_health, "automation health")


@automation_app.command("run-due")
def run_due_command() -> None:
    """Execute every scheduled job that is due (call from cron every few minutes)."""

    async def _run_due() -> None:
        from commerce_export.services.automation_service import dispatch_due_jobs
        from commerce_export.services.export_runner import RunOutcome

        async with open_runtime(get_settings()) as runtime:
            reports = await dispatch_due_jobs(runtime.require_runner(), runtime.scheduler)

        if not reports:
            typer.echo("No jobs due")
            return
        for report in reports:
            typer.echo(report.summary())
        if any(r.outcome in (RunOutcome.TOTAL_FAILURE, RunOutcome.PARTIAL_FAILURE) for r in reports):
            raise typer.Exit(code=1)

    run_command(_run_due, "automation run-due")
