"""Wiring of concrete collaborators for CLI commands."""

import asyncio
from collections.abc import AsyncIterator, Callable, Coroutine
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

import typer
from loguru import logger

from commerce_export.core.config import Settings
from commerce_export.core.database import dispose_engine, get_engine, init_engine
from commerce_export.core.errors import ConfigurationError
from commerce_export.core.scheduler import JsonFileJobScheduler
from commerce_export.lib.datasource import CommerceDataSource, WooCommerceRestDataSource
from commerce_export.lib.publisher import S3Uploader
from commerce_export.schemas.export_type import ExportTypeConfig, load_export_types
from commerce_export.services.alerting import FailureAlerter
from commerce_export.services.export_runner import ExportRunner
from commerce_export.services.history_service import ExportHistory
from commerce_export.services.state_store import SqlStateStore


@dataclass
class Runtime:
    """Collaborators shared by one CLI invocation."""

    settings: Settings
    store: SqlStateStore
    history: ExportHistory
    scheduler: JsonFileJobScheduler
    uploader: S3Uploader
    alerter: FailureAlerter
    data_source: CommerceDataSource | None = None
    runner: ExportRunner | None = None

    def require_runner(self) -> ExportRunner:
        if self.runner is None:
            msg = "Export runner requires a configured data source"
            raise ConfigurationError(msg)
        return self.runner


def parse_required_date(value: str, option: str = "--date") -> date:
    """Parse a mandatory ``YYYY-MM-DD`` option value."""
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        msg = f"Invalid date {value!r}; expected YYYY-MM-DD"
        raise typer.BadParameter(msg, param_hint=option) from exc


def parse_date(value: str | None, option: str = "--date") -> date | None:
    """Parse an optional ``YYYY-MM-DD`` option value."""
    if value is None:
        return None
    return parse_required_date(value, option)


def export_types_loader(settings: Settings) -> list[ExportTypeConfig]:
    return load_export_types(Path(settings.export_types_file))


def create_data_source(settings: Settings) -> CommerceDataSource:
    """Build the upstream data source from settings.

    Raises:
        ConfigurationError: If the store URL or API credentials are missing.
    """
    if not (settings.store_url and settings.store_consumer_key and settings.store_consumer_secret):
        msg = (
            "Store URL and REST API credentials must be configured "
            "(STORE_URL, STORE_CONSUMER_KEY, STORE_CONSUMER_SECRET)"
        )
        raise ConfigurationError(msg)
    return WooCommerceRestDataSource(
        settings.store_url,
        settings.store_consumer_key,
        settings.store_consumer_secret,
        timeout=settings.store_timeout,
    )


@asynccontextmanager
async def open_runtime(settings: Settings, *, with_source: bool = True) -> AsyncIterator[Runtime]:
    """Initialize the state database and collaborators, and tear them down afterwards.

    Args:
        settings: Application settings.
        with_source: Also build the data source and the export runner.
    """
    init_engine(settings.database_url)
    store = SqlStateStore(get_engine())
    data_source: CommerceDataSource | None = None
    try:
        await store.create_schema()
        runtime = Runtime(
            settings=settings,
            store=store,
            history=ExportHistory(store, capacity=settings.history_capacity),
            scheduler=JsonFileJobScheduler(Path(settings.jobs_file)),
            uploader=S3Uploader.from_settings(settings),
            alerter=FailureAlerter(settings),
        )
        if with_source:
            data_source = create_data_source(settings)
            runtime.data_source = data_source
            runtime.runner = ExportRunner(
                settings=settings,
                data_source=data_source,
                uploader=runtime.uploader,
                history=runtime.history,
                scheduler=runtime.scheduler,
                alerter=runtime.alerter,
                export_types=lambda: export_types_loader(settings),
            )
        yield runtime
    finally:
        close = getattr(data_source, "close", None)
        if close is not None:
            await close()
        await dispose_engine()


def run_command(coro_factory: Callable[[], Coroutine[Any, Any, None]], label: str) -> None:
    """Run an async command body, turning any failure into exit code 1.

    Args:
        coro_factory: Zero-argument callable returning the command coroutine.
        label: Command name used in the log line.
    """
    try:
        asyncio.run(coro_factory())
    except typer.Exit:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.error("{} command failed: {}", label, exc)
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc
