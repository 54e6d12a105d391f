"""S3 CLI commands."""

import typer

s3_app = typer.Typer(name="s3", help="Object storage commands.")


@s3_app.command("check")
def check_command() -> None:
    """Test the S3 connection with the configured credentials."""
    from commerce_export.core.config import get_settings
    from commerce_export.lib.publisher import S3Uploader

    settings = get_settings()
    if not settings.s3_credentials_configured:
        typer.echo("Error: S3 credentials are not configured. Set S3_ACCESS_KEY_ID and S3_SECRET_ACCESS_KEY.")
        raise typer.Exit(code=1)

    result = S3Uploader.from_settings(settings).test_connection()
    typer.echo(result.message)
    if not result.success:
        raise typer.Exit(code=1)

    if settings.s3_bucket and result.buckets and settings.s3_bucket not in result.buckets:
        typer.echo(f"Warning: bucket {settings.s3_bucket!r} is not in the list of accessible buckets")
    for name in result.buckets:
        typer.echo(f"  {name}")
