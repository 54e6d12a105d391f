"""Export CLI commands: automated, manual, and per-type runs."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import typer
from loguru import logger

if TYPE_CHECKING:
    from commerce_export.services.export_runner import ExportRunner, RunReport

export_app = typer.Typer(name="export", help="Run exports.")


def _print_report(report: "RunReport") -> None:
    from commerce_export.services.export_runner import RunOutcome

    for result in report.results:
        marker = "skip" if result.skipped else ("ok" if result.success else "FAIL")
        typer.echo(f"  [{marker:>4}] {result.export_name} {result.target_date}  {result.message}")
        for issue in result.issues:
            item = f" item {issue.item_id}" if issue.item_id is not None else ""
            typer.echo(f"         skipped entity {issue.entity_id}{item}: {issue.reason}")

    if report.outcome == RunOutcome.SKIPPED:
        typer.echo("Export skipped: no data for the selected day")
    elif report.outcome == RunOutcome.COMPLETED:
        typer.echo(f"Export completed: {report.success_count}/{len(report.results)} exports succeeded")
    else:
        typer.echo(
            f"Export failed: {report.success_count}/{len(report.results)} exports succeeded. "
            "Check the logs for details."
        )
        if report.retry_scheduled:
            typer.echo("A retry has been scheduled.")


async def _run_with_runner(action: Callable[["ExportRunner"], Awaitable["RunReport"]]) -> int:
    from commerce_export.cli.runtime import open_runtime
    from commerce_export.core.config import get_settings
    from commerce_export.services.export_runner import RunOutcome

    try:
        settings = get_settings()
        async with open_runtime(settings) as runtime:
            report = await action(runtime.require_runner())
    except Exception as exc:  # noqa: BLE001
        logger.error("Export command failed: {}", exc)
        typer.echo(f"Error: Export failed: {exc}")
        typer.echo("0 exports succeeded")
        return 1

    _print_report(report)
    return 0 if report.outcome in (RunOutcome.COMPLETED, RunOutcome.SKIPPED) else 1


def _finish(code: int) -> None:
    if code:
        raise typer.Exit(code=code)


@export_app.command("run")
def run_command(
    target_date: str | None = typer.Option(None, "--date", help="Day to export (YYYY-MM-DD); default yesterday"),
) -> None:
    """Run the automated export for every enabled export type."""
    from commerce_export.cli.runtime import parse_date

    day = parse_date(target_date)
    _finish(asyncio.run(_run_with_runner(lambda runner: runner.run_automated(day))))


@export_app.command("manual")
def manual_command(
    target_date: str = typer.Option(..., "--date", help="First day to export (YYYY-MM-DD)"),
    end_date: str | None = typer.Option(None, "--end-date", help="Last day to export (YYYY-MM-DD)"),
    export_types: list[str] | None = typer.Option(None, "--type", "-t", help="Export type id (repeatable)"),
) -> None:
    """Re-run exports for a day or range of days, overwriting existing files."""
    from commerce_export.cli.runtime import parse_date, parse_required_date

    start = parse_required_date(target_date)
    end = parse_date(end_date, "--end-date")
    _finish(asyncio.run(_run_with_runner(lambda runner: runner.run_manual(start, end, export_types or None))))


@export_app.command("type")
def type_command(
    export_type_id: str = typer.Argument(..., help="Export type id"),
    target_date: str | None = typer.Option(None, "--date", help="Day to export (YYYY-MM-DD); default yesterday"),
) -> None:
    """Run the scheduled export for a single export type."""
    from commerce_export.cli.runtime import parse_date

    day = parse_date(target_date)
    _finish(asyncio.run(_run_with_runner(lambda runner: runner.run_export_type(export_type_id, day))))
