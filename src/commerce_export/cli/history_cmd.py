"""History CLI commands for the export ledger."""

import json

import typer

from commerce_export.cli.runtime import open_runtime, run_command
from commerce_export.core.config import get_settings

history_app = typer.Typer(name="history", help="Inspect and maintain the export history.")


@history_app.command("list")
def list_command(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of entries to show"),
    export_type: str | None = typer.Option(None, "--type", "-t", help="Only this export type id"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
) -> None:
    """List recent history entries, newest first."""

    async def _list() -> None:
        async with open_runtime(get_settings(), with_source=False) as runtime:
            if export_type:
                records = (await runtime.history.for_type(export_type))[:limit]
            else:
                records = await runtime.history.recent(limit)

        if as_json:
            typer.echo(json.dumps([r.to_dict() for r in records], indent=2))
            return
        if not records:
            typer.echo("No exports recorded.")
            return
        for r in records:
            typer.echo(
                f"{r.created_at:%Y-%m-%d %H:%M}  {r.status.value:<9} {r.trigger.value:<9} "
                f"{r.export_type:<20} {r.date}  {r.file_name}  {r.file_size:>8} B  {r.id}"
            )

    run_command(_list, "history")


@history_app.command("stats")
def stats_command() -> None:
    """Show aggregate export statistics."""

    async def _stats() -> None:
        async with open_runtime(get_settings(), with_source=False) as runtime:
            stats = await runtime.history.statistics()

        typer.echo(f"Total exports:      {stats.total_exports}")
        typer.echo(f"Successful exports: {stats.successful_exports}")
        typer.echo(f"Failed exports:     {stats.failed_exports}")
        typer.echo(f"Total file size:    {stats.total_file_size} bytes")
        if stats.exports_by_type:
            typer.echo("By type:")
            for name, count in sorted(stats.exports_by_type.items()):
                typer.echo(f"  {name:<30} {count}")
        if stats.exports_by_date:
            typer.echo("By date:")
            for day, count in list(stats.exports_by_date.items())[:14]:
                typer.echo(f"  {day}  {count}")

    run_command(_stats, "history")


@history_app.command("delete")
def delete_command(
    record_id: str = typer.Argument(..., help="History entry id"),
    keep_file: bool = typer.Option(False, "--keep-file", help="Do not delete the staged CSV"),
) -> None:
    """Delete one history entry (and its staged file)."""

    async def _delete() -> None:
        async with open_runtime(get_settings(), with_source=False) as runtime:
            removed = await runtime.history.delete(record_id, remove_file=not keep_file)

        if not removed:
            typer.echo(f"No history entry {record_id}")
            raise typer.Exit(code=1)
        typer.echo(f"Deleted {record_id}")

    run_command(_delete, "history")


@history_app.command("clear")
def clear_command(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Remove every history entry."""
    if not yes:
        typer.confirm("Delete all export history?", abort=True)

    async def _clear() -> None:
        async with open_runtime(get_settings(), with_source=False) as runtime:
            count = await runtime.history.clear()
        typer.echo(f"Cleared {count} history entries")

    run_command(_clear, "history")


@history_app.command("verify")
def verify_command(
    limit: int | None = typer.Option(None, "--limit", "-n", help="Only check the newest N entries"),
) -> None:
    """Check that the staged file of each history entry is a plausible CSV."""

    async def _verify() -> None:
        async with open_runtime(get_settings(), with_source=False) as runtime:
            checks = await runtime.history.verify(limit)

        invalid = 0
        for record, integrity in checks:
            if integrity.valid:
                typer.echo(f"  ok    {record.file_path}")
            else:
                invalid += 1
                typer.echo(f"  FAIL  {record.file_path}: {integrity.error}")
        typer.echo(f"{len(checks) - invalid}/{len(checks)} files valid")
        if invalid:
            raise typer.Exit(code=1)

    run_command(_verify, "history")
