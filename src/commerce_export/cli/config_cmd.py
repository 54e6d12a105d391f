"""Configuration CLI commands for export type definitions."""

import json
from pathlib import Path

import typer
from loguru import logger

config_app = typer.Typer(name="config", help="Export type configuration.")


@config_app.command("init")
def init_command(
    force: bool = typer.Option(False, "--force", help="Overwrite an existing configuration file"),
) -> None:
    """Write the stock export type definitions to the configuration file."""
    from commerce_export.core.config import get_settings
    from commerce_export.lib.exporter import default_export_types
    from commerce_export.schemas.export_type import save_export_types

    path = Path(get_settings().export_types_file)
    if path.exists() and not force:
        typer.echo(f"Error: {path} already exists. Use --force to overwrite.")
        raise typer.Exit(code=1)

    types = default_export_types()
    save_export_types(path, types)
    logger.info("Wrote {} export types to {}", len(types), path)
    typer.echo(f"Wrote {len(types)} export types to {path}")


@config_app.command("show")
def show_command() -> None:
    """Validate and print the export type definitions and key settings."""
    from commerce_export.core.config import get_settings
    from commerce_export.core.errors import ConfigurationError
    from commerce_export.schemas.export_type import load_export_types

    settings = get_settings()
    path = Path(settings.export_types_file)
    try:
        types = load_export_types(path)
    except ConfigurationError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc

    typer.echo(f"Export types file: {path}{'' if path.exists() else ' (missing)'}")
    typer.echo(f"Export root:       {settings.export_root}")
    typer.echo(f"Timezone:          {settings.reference_timezone}")
    typer.echo(f"S3 bucket:         {settings.s3_bucket or '(not set)'}")
    typer.echo(f"S3 region:         {settings.s3_region}")
    typer.echo(f"S3 credentials:    {'configured' if settings.s3_credentials_configured else 'missing'}")
    typer.echo(f"Store URL:         {settings.store_url or '(not set)'}")
    typer.echo("")
    if not types:
        typer.echo("No export types configured. Run `commerce-export config init`.")
        return
    for t in types:
        state = "enabled" if t.enabled else "disabled"
        typer.echo(
            f"{t.id} ({t.name}) [{state}] {t.kind.value}, {t.frequency.value} at {t.time}, "
            f"s3://{settings.s3_bucket or '?'}/{t.s3_directory}, {len(t.enabled_mappings)} columns"
        )
    typer.echo("")
    typer.echo(json.dumps([t.model_dump(mode="json", by_alias=True) for t in types], indent=2))
