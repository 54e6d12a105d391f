"""Export runner: drives one export cycle through extraction, write, and upload.

A run moves through ``CHECKING_PRECONDITIONS -> EXTRACTING -> WRITING ->
UPLOADING`` for each export type in turn and ends ``COMPLETED``,
``PARTIAL_FAILURE`` or ``TOTAL_FAILURE``.  A scheduled run that fails
entirely, or whose preconditions fail, persists a RetryState and asks the
scheduler to re-run it once after ``retry_delay_seconds``; the next fully
successful scheduled run clears it.  Partial failures alert but are not
retried.
"""

import asyncio
import enum
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from typing import Any, Protocol
from uuid import uuid4

from loguru import logger

from commerce_export.core.config import Settings
from commerce_export.core.errors import ConfigurationError, PreconditionError
from commerce_export.core.scheduler import ACTION_RUN_AUTOMATED, RETRY_JOB_NAME, JobScheduler
from commerce_export.lib.datasource import CommerceDataSource, DataSourceError
from commerce_export.lib.exporter import (
    SOURCE_OF_ORIGIN_KEY,
    apply_source_of_origin,
    build_export_filename,
    build_header,
    build_local_path,
    build_object_key,
    resolve_statuses,
    write_export_csv,
)
from commerce_export.lib.extractor import ExtractionIssue, day_bounds, get_extractor
from commerce_export.lib.history import ExportStatus, RetryState, RunTrigger, validate_file_integrity
from commerce_export.schemas.export_type import ExportKind, ExportTypeConfig
from commerce_export.services.alerting import Alerter
from commerce_export.services.history_service import ExportHistory

ExportTypesSource = Sequence[ExportTypeConfig] | Callable[[], Sequence[ExportTypeConfig]]


class RunStage(enum.StrEnum):
    """States of the per-run state machine."""

    CHECKING_PRECONDITIONS = "checking_preconditions"
    EXTRACTING = "extracting"
    WRITING = "writing"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    PARTIAL_FAILURE = "partial_failure"
    TOTAL_FAILURE = "total_failure"
    RETRY_SCHEDULED = "retry_scheduled"


class RunOutcome(enum.StrEnum):
    """Overall result of a run."""

    COMPLETED = "completed"
    PARTIAL_FAILURE = "partial_failure"
    TOTAL_FAILURE = "total_failure"
    SKIPPED = "skipped"


class Uploader(Protocol):
    def upload(self, bucket: str, filename: str, local_path: str | Path, directory: str, folder: str = "") -> bool: ...


@dataclass
class TypeResult:
    """Outcome for one export type on one date."""

    export_type_id: str
    export_name: str
    target_date: date
    success: bool = False
    skipped: bool = False
    stage: RunStage = RunStage.CHECKING_PRECONDITIONS
    message: str = ""
    file_name: str = ""
    file_path: str = ""
    object_key: str | None = None
    record_count: int = 0
    issues: list[ExtractionIssue] = field(default_factory=list)


@dataclass
class RunReport:
    """Everything that happened during one run."""

    trigger: RunTrigger
    target_dates: list[date]
    started_at: datetime
    finished_at: datetime | None = None
    outcome: RunOutcome = RunOutcome.TOTAL_FAILURE
    stages: list[RunStage] = field(default_factory=list)
    results: list[TypeResult] = field(default_factory=list)
    error: str | None = None
    retry_scheduled: bool = False
    run_id: str = field(default_factory=lambda: uuid4().hex[:8])

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def failed_names(self) -> list[str]:
        return list(dict.fromkeys(r.export_name for r in self.results if not r.success))

    @property
    def stage(self) -> RunStage | None:
        return self.stages[-1] if self.stages else None

    def summary(self) -> str:
        return f"{self.outcome.value}: {self.success_count}/{len(self.results)} exports succeeded"


class ExportRunner:
    """Runs exports with injected collaborators.

    Args:
        settings: Application settings.
        data_source: Upstream commerce data source.
        uploader: Object-storage uploader (synchronous; run in a worker thread).
        history: Export history ledger.
        scheduler: Job scheduler used to arm retries.
        alerter: Failure alerter.
        export_types: Configured export types, or a zero-argument callable
            returning them (re-read at the start of every run).
        clock: Returns the current aware datetime.
    """

    def __init__(
        self,
        settings: Settings,
        data_source: CommerceDataSource,
        uploader: Uploader,
        history: ExportHistory,
        scheduler: JobScheduler,
        alerter: Alerter,
        export_types: ExportTypesSource,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings
        self.data_source = data_source
        self.uploader = uploader
        self.history = history
        self.store = history.store
        self.scheduler = scheduler
        self.alerter = alerter
        self._export_types = export_types
        self._clock = clock or (lambda: datetime.now(UTC))
        self._locks: dict[tuple[str, date], tuple[asyncio.Lock, int]] = {}

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def default_date(self) -> date:
        """Yesterday in the reference timezone."""
        return self._clock().astimezone(self.settings.tz).date() - timedelta(days=1)

    async def run_automated(self, target_date: date | None = None) -> RunReport:
        """Export every enabled type for ``target_date`` (default: yesterday).

        Types that already have a completed export for the date are skipped
        and counted as succeeded when ``enforce_idempotency`` is on.

        Returns:
            RunReport; never raises for pipeline failures.
        """
        target_date = target_date or self.default_date()
        report = RunReport(trigger=RunTrigger.SCHEDULED, target_dates=[target_date], started_at=self._clock())
        logger.info("Automated export run started for {}", target_date)

        async def _run() -> None:
            configured = await self._check_preconditions(report)
            selected = self._select(configured, None)
            for export_type in selected:
                report.results.append(
                    await self._export_one(
                        report,
                        export_type,
                        target_date,
                        skip_existing=self.settings.enforce_idempotency,
                    )
                )

        await self._execute(report, _run, arm_retry=True)
        return report

    async def run_manual(
        self,
        start_date: date,
        end_date: date | None = None,
        export_type_ids: Sequence[str] | None = None,
    ) -> RunReport:
        """Export the selected types for every day in ``[start_date, end_date]``.

        Manual runs always re-run: existing local files are overwritten and a
        new history entry is appended.  Explicitly named types run even when
        disabled.  Manual runs never arm a retry.

        Args:
            start_date: First day.
            end_date: Last day (defaults to ``start_date``).
            export_type_ids: Subset of export type ids; all enabled when omitted.

        Returns:
            RunReport; never raises for pipeline failures.
        """
        end_date = end_date or start_date
        days = [start_date + timedelta(days=n) for n in range((end_date - start_date).days + 1)]
        report = RunReport(trigger=RunTrigger.MANUAL, target_dates=days, started_at=self._clock())
        logger.info("Manual export run started for {} to {}", start_date, end_date)

        async def _run() -> None:
            if start_date > end_date:
                msg = f"Start date {start_date} is after end date {end_date}"
                raise ConfigurationError(msg)
            configured = await self._check_preconditions(report)
            selected = self._select(configured, export_type_ids)
            for day in days:
                for export_type in selected:
                    report.results.append(await self._export_one(report, export_type, day, skip_existing=False))

        await self._execute(report, _run, arm_retry=False)
        return report

    async def run_export_type(self, export_type_id: str, target_date: date | None = None) -> RunReport:
        """Per-type scheduled job: export one type for ``target_date`` (default: yesterday).

        An order export with no matching orders for the day is skipped rather
        than failed.  Failures alert but do not arm the run-level retry.

        Returns:
            RunReport; never raises for pipeline failures.
        """
        target_date = target_date or self.default_date()
        report = RunReport(trigger=RunTrigger.SCHEDULED, target_dates=[target_date], started_at=self._clock())

        async def _run() -> None:
            configured = await self._check_preconditions(report)
            export_type = next((t for t in configured if t.id == export_type_id), None)
            if export_type is None or not export_type.enabled:
                msg = f"Export type {export_type_id!r} is not configured or not enabled"
                raise ConfigurationError(msg)

            if export_type.kind == ExportKind.ORDERS:
                start, end = day_bounds(target_date, self.settings.tz)
                count = await self.data_source.count_orders(start, end, resolve_statuses(export_type))
                if count == 0:
                    logger.info("No orders for {} on {}; skipping", export_type.id, target_date)
                    report.outcome = RunOutcome.SKIPPED
                    return

            report.results.append(
                await self._export_one(
                    report,
                    export_type,
                    target_date,
                    skip_existing=self.settings.enforce_idempotency,
                )
            )

        await self._execute(report, _run, arm_retry=False)
        return report

    # ------------------------------------------------------------------
    # Run skeleton
    # ------------------------------------------------------------------

    async def _execute(self, report: RunReport, body: Callable[[], Any], *, arm_retry: bool) -> None:
        """Run ``body`` with the run id and trigger bound to every log record."""
        with logger.contextualize(run_id=report.run_id, trigger=report.trigger.value):
            await self._execute_bound(report, body, arm_retry=arm_retry)

    async def _execute_bound(self, report: RunReport, body: Callable[[], Any], *, arm_retry: bool) -> None:
        """Run ``body`` under the run timeout and settle the outcome."""
        timeout = self.settings.run_timeout_seconds
        try:
            await asyncio.wait_for(body(), timeout=timeout)
        except ConfigurationError as exc:
            logger.critical("Export configuration error: {}", exc)
            report.error = str(exc)
            report.outcome = RunOutcome.TOTAL_FAILURE
            self._enter(report, RunStage.TOTAL_FAILURE)
        except PreconditionError as exc:
            logger.error("Export preconditions failed: {}", exc)
            report.error = str(exc)
            await self._settle_failure(report, f"Precondition failure: {exc}", arm_retry, total=True)
        except TimeoutError:
            logger.error("Export run exceeded {}s and was abandoned", timeout)
            report.error = f"Run exceeded {timeout}s"
            await self._settle_failure(report, report.error, arm_retry, total=True)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Export run failed unexpectedly")
            report.error = str(exc) or type(exc).__name__
            await self._settle_failure(report, f"Unexpected error: {report.error}", arm_retry, total=True)
        else:
            if report.outcome != RunOutcome.SKIPPED:
                await self._conclude(report, arm_retry)
        finally:
            report.finished_at = self._clock()

        logger.info("Export run finished: {}", report.summary())

    async def _conclude(self, report: RunReport, arm_retry: bool) -> None:
        failed = report.failure_count
        succeeded = report.success_count

        if failed == 0:
            report.outcome = RunOutcome.COMPLETED
            self._enter(report, RunStage.COMPLETED)
            logger.info("All {} exports completed successfully", succeeded)
            if arm_retry:
                await self._clear_retry()
        elif succeeded > 0:
            await self._settle_failure(report, "Partial export failure", arm_retry, total=False)
        else:
            await self._settle_failure(report, "Complete export failure", arm_retry, total=True)

    async def _settle_failure(self, report: RunReport, reason: str, arm_retry: bool, *, total: bool) -> None:
        if total:
            report.outcome = RunOutcome.TOTAL_FAILURE
            self._enter(report, RunStage.TOTAL_FAILURE)
        else:
            report.outcome = RunOutcome.PARTIAL_FAILURE
            self._enter(report, RunStage.PARTIAL_FAILURE)

        failed_names = report.failed_names or self._enabled_names()
        details = reason if not report.error or report.error in reason else f"{reason}: {report.error}"
        try:
            await self.alerter.send(failed_names, details)
        except Exception:  # noqa: BLE001
            logger.exception("Failure alert could not be sent")

        if total and arm_retry:
            await self._arm_retry(report, reason)

    async def _arm_retry(self, report: RunReport, reason: str) -> None:
        now = self._clock()
        prior = await self.store.get_retry_state()
        attempts = (prior.attempt_count if prior else 0) + 1
        run_at = now + timedelta(seconds=self.settings.retry_delay_seconds)

        state = RetryState(reason=reason, timestamp=now, attempt_count=attempts, next_run_at=run_at)
        await self.store.set_retry_state(state)
        self.scheduler.schedule_once(
            RETRY_JOB_NAME,
            run_at,
            ACTION_RUN_AUTOMATED,
            target_date=report.target_dates[0].isoformat(),
            attempt=attempts,
        )
        report.retry_scheduled = True
        self._enter(report, RunStage.RETRY_SCHEDULED)
        logger.warning("Retry {} scheduled for {} ({})", attempts, run_at.isoformat(), reason)

    async def _clear_retry(self) -> None:
        if await self.store.get_retry_state() is not None:
            await self.store.clear_retry_state()
            self.scheduler.cancel(RETRY_JOB_NAME)
            logger.info("Cleared pending retry after a successful run")

    # ------------------------------------------------------------------
    # Preconditions and selection
    # ------------------------------------------------------------------

    def configured_types(self) -> list[ExportTypeConfig]:
        """Current export type configuration.

        Raises:
            ConfigurationError: If the configuration is invalid.
            PreconditionError: If the configuration cannot be read.
        """
        source = self._export_types
        try:
            return list(source() if callable(source) else source)
        except OSError as exc:
            msg = f"Export configuration unavailable: {exc}"
            raise PreconditionError(msg) from exc

    async def _check_preconditions(self, report: RunReport) -> list[ExportTypeConfig]:
        self._enter(report, RunStage.CHECKING_PRECONDITIONS)
        configured = self.configured_types()
        floor = self.settings.min_export_definitions
        if len(configured) < floor:
            msg = f"{len(configured)} export definitions configured, at least {floor} required"
            raise PreconditionError(msg)

        if not self.settings.s3_configured:
            msg = "S3 bucket or credentials are not configured"
            raise ConfigurationError(msg)

        try:
            await self.data_source.check_available()
        except DataSourceError as exc:
            msg = f"Data source unavailable: {exc.message}"
            raise PreconditionError(msg) from exc
        return configured

    def _select(self, configured: Sequence[ExportTypeConfig], ids: Sequence[str] | None) -> list[ExportTypeConfig]:
        if ids:
            by_id = {t.id: t for t in configured}
            for missing in [i for i in ids if i not in by_id]:
                logger.warning("No configuration for export type {!r}; skipping", missing)
            selected = [by_id[i] for i in dict.fromkeys(ids) if i in by_id]
        else:
            for disabled in [t for t in configured if not t.enabled]:
                logger.info("Export type {!r} disabled; skipping", disabled.name)
            selected = [t for t in configured if t.enabled]

        if not selected:
            msg = "No enabled export types to run"
            raise ConfigurationError(msg)
        return selected

    def _enabled_names(self) -> list[str]:
        try:
            return [t.name for t in self.configured_types() if t.enabled]
        except Exception:  # noqa: BLE001
            return []

    # ------------------------------------------------------------------
    # One export type on one date
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _type_date_lock(self, export_type_id: str, target_date: date) -> AsyncIterator[None]:
        """Serialize work on one (type, date); the entry is dropped once nobody holds or awaits it."""
        key = (export_type_id, target_date)
        entry = self._locks.get(key)
        lock, users = entry if entry else (asyncio.Lock(), 0)
        self._locks[key] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[key]
            if users == 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    def _enter(self, report: RunReport, stage: RunStage, result: TypeResult | None = None) -> None:
        if result is not None:
            result.stage = stage
        if not report.stages or report.stages[-1] != stage:
            report.stages.append(stage)
        logger.debug("Run stage -> {}{}", stage.value, f" ({result.export_type_id})" if result else "")

    async def _export_one(
        self,
        report: RunReport,
        export_type: ExportTypeConfig,
        target_date: date,
        *,
        skip_existing: bool,
    ) -> TypeResult:
        settings = self.settings
        filename = build_export_filename(export_type.prefix, target_date)
        local_path = build_local_path(Path(settings.export_root), export_type.local_directory, filename)
        object_key = build_object_key(export_type.s3_directory, filename, settings.s3_key_prefix)
        result = TypeResult(
            export_type_id=export_type.id,
            export_name=export_type.name,
            target_date=target_date,
            file_name=filename,
            file_path=str(local_path),
        )

        with logger.contextualize(export_type=export_type.id):
            async with self._type_date_lock(export_type.id, target_date):
                if skip_existing and await self.history.exists(export_type.id, target_date, export_type.name):
                    logger.info("Export {} for {} already completed; skipping", export_type.id, target_date)
                    result.success = True
                    result.skipped = True
                    result.message = "Already exported"
                    return result

                try:
                    await self._extract_write_upload(report, export_type, target_date, result, local_path, object_key)
                except Exception as exc:  # noqa: BLE001
                    logger.exception(
                        "Export {} for {} failed during {}", export_type.id, target_date, result.stage.value
                    )
                    result.success = False
                    result.message = f"{result.stage.value} failed: {exc}"

            if result.success:
                logger.info("Export {!r} for {} successful: {}", export_type.name, target_date, filename)
            else:
                logger.error("Export {!r} for {} failed: {}", export_type.name, target_date, result.message)
        return result

    async def _extract_write_upload(
        self,
        report: RunReport,
        export_type: ExportTypeConfig,
        target_date: date,
        result: TypeResult,
        local_path: Path,
        object_key: str,
    ) -> None:
        settings = self.settings
        tz = settings.tz

        self._enter(report, RunStage.EXTRACTING, result)
        start, end = day_bounds(target_date, tz)
        extraction = await get_extractor(export_type.kind, tz).extract(self.data_source, export_type, start, end)
        result.issues = extraction.issues
        rows = extraction.rows
        if export_type.include_source_of_origin:
            for row in rows:
                row[SOURCE_OF_ORIGIN_KEY] = settings.source_of_origin

        self._enter(report, RunStage.WRITING, result)
        mappings = apply_source_of_origin(export_type.field_mappings, export_type.include_source_of_origin)
        written = await asyncio.to_thread(write_export_csv, local_path, rows, mappings)
        if written is None:
            result.message = "No file produced"
            return
        result.record_count = written.record_count

        integrity = validate_file_integrity(local_path, columns=len(build_header(mappings)))
        if not integrity.valid:
            result.message = f"File validation failed: {integrity.error}"
            return

        self._enter(report, RunStage.UPLOADING, result)
        uploaded = await asyncio.to_thread(
            self.uploader.upload,
            settings.s3_bucket or "",
            result.file_name,
            str(local_path),
            export_type.s3_directory,
            settings.s3_key_prefix,
        )

        await self.history.record(
            export_type.id,
            target_date,
            result.file_name,
            local_path,
            export_type.name,
            ExportStatus.COMPLETED if uploaded else ExportStatus.FAILED,
            object_key=object_key if uploaded else None,
            trigger=report.trigger,
        )
        result.success = uploaded
        result.object_key = object_key if uploaded else None
        result.message = "Uploaded" if uploaded else "Upload failed"
