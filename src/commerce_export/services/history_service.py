"""History service: the append-only, capacity-bounded export ledger."""

from datetime import date
from pathlib import Path

from loguru import logger

from commerce_export.lib.history import (
    ExportRecord,
    ExportStatistics,
    ExportStatus,
    FileIntegrity,
    RunTrigger,
    compute_statistics,
    validate_file_integrity,
)
from commerce_export.services.state_store import StateStore

DEFAULT_CAPACITY = 1000


class ExportHistory:
    """Records export attempts and answers duplicate and statistics queries.

    Entries are only written after the stage they describe has finished, so
    an interrupted run never leaves a record for a file that was not written.

    Args:
        store: Backing state store.
        capacity: Maximum number of entries retained; oldest are evicted first.
    """

    def __init__(self, store: StateStore, capacity: int = DEFAULT_CAPACITY) -> None:
        self.store = store
        self.capacity = capacity

    async def record(
        self,
        export_type: str,
        target_date: date,
        file_name: str,
        file_path: str | Path,
        export_name: str,
        status: ExportStatus,
        *,
        object_key: str | None = None,
        trigger: RunTrigger = RunTrigger.SCHEDULED,
    ) -> ExportRecord:
        """Append an entry describing one export attempt.

        File size and existence are captured from disk at write time.

        Args:
            export_type: Export type id.
            target_date: Calendar date the export covers.
            file_name: Staged file name.
            file_path: Staged file path.
            export_name: Export type display name.
            status: Outcome of the attempt.
            object_key: Object key the file was uploaded to, if any.
            trigger: What started the run.

        Returns:
            The stored ExportRecord.
        """
        path = Path(file_path)
        exists = path.is_file()
        entry = ExportRecord(
            export_type=export_type,
            export_name=export_name,
            date=target_date,
            file_name=file_name,
            file_path=str(path),
            object_key=object_key,
            status=status,
            trigger=trigger,
            file_size=path.stat().st_size if exists else 0,
            file_exists=exists,
        )
        await self.store.append(entry, self.capacity)
        logger.debug("Recorded {} export {} for {} ({})", status.value, export_type, target_date, entry.id)
        return entry

    async def exists(self, export_type: str, target_date: date, export_name: str) -> bool:
        """Whether a completed export exists for (type, date, name)."""
        found = await self.store.find(export_type, target_date, export_name, ExportStatus.COMPLETED)
        return bool(found)

    async def recent(self, limit: int = 100) -> list[ExportRecord]:
        """Most recent entries, newest first."""
        return await self.store.list_records(limit)

    async def for_date_range(self, start: date, end: date) -> list[ExportRecord]:
        """Entries whose export date falls within ``[start, end]``, newest first."""
        return [r for r in await self.store.list_records() if start <= r.date <= end]

    async def for_type(self, export_type: str) -> list[ExportRecord]:
        """Entries for one export type, newest first."""
        return [r for r in await self.store.list_records() if r.export_type == export_type]

    async def get(self, record_id: str) -> ExportRecord | None:
        return await self.store.get(record_id)

    async def statistics(self) -> ExportStatistics:
        return compute_statistics(await self.store.list_records())

    async def delete(self, record_id: str, remove_file: bool = True) -> bool:
        """Remove an entry and, optionally, its staged file.

        Args:
            record_id: Entry id.
            remove_file: Also delete the local file when it still exists.

        Returns:
            True if an entry was removed.
        """
        entry = await self.store.delete(record_id)
        if entry is None:
            return False
        if remove_file:
            path = Path(entry.file_path)
            if path.is_file():
                path.unlink()
                logger.info("Deleted staged file {}", path)
        logger.info("Deleted history entry {}", record_id)
        return True

    async def clear(self) -> int:
        count = await self.store.clear()
        logger.info("Cleared {} history entries", count)
        return count

    async def verify(self, limit: int | None = None) -> list[tuple[ExportRecord, FileIntegrity]]:
        """Run the integrity check against the staged file of each entry."""
        records = await self.store.list_records(limit)
        return [(r, validate_file_integrity(r.file_path)) for r in records]

    @staticmethod
    def validate_file_integrity(path: str | Path) -> FileIntegrity:
        return validate_file_integrity(path)
