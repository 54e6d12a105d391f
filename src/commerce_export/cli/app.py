"""Typer CLI root application."""

import typer

from commerce_export.core.config import get_settings
from commerce_export.core.logging import setup_logging

app = typer.Typer(name="commerce-export", help="Commerce CSV export and S3 upload pipeline")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir, json_output=settings.log_json)


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from commerce_export.cli.automation_cmd import automation_app
    from commerce_export.cli.config_cmd import config_app
    from commerce_export.cli.export_cmd import export_app
    from commerce_export.cli.history_cmd import history_app
    from commerce_export.cli.s3_cmd import s3_app

    app.add_typer(export_app, name="export", help="Run exports")
    app.add_typer(history_app, name="history", help="Export history commands")
    app.add_typer(s3_app, name="s3", help="Object storage commands")
    app.add_typer(automation_app, name="automation", help="Scheduled automation commands")
    app.add_typer(config_app, name="config", help="Export type configuration commands")


_register_subcommands()
