"""Persisted export state: the history ledger and the pending-retry marker.

The export runner receives a ``StateStore`` at construction.  The in-memory
store backs tests and dry runs; the SQL store persists to any async
SQLAlchemy database.
"""

import itertools
from datetime import UTC, date, datetime
from typing import Protocol

from loguru import logger
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from commerce_export.lib.history.types import ExportRecord, ExportStatus, RetryState, RunTrigger
from commerce_export.models import Base, ExportRecordRow, RetryStateRow


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo; stored timestamps are always UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class StateStore(Protocol):
    """Storage for history entries and the retry marker."""

    async def append(self, record: ExportRecord, capacity: int) -> None:
        """Add an entry, then evict the oldest beyond ``capacity``."""
        ...

    async def list_records(self, limit: int | None = None) -> list[ExportRecord]:
        """Entries newest first."""
        ...

    async def find(
        self,
        export_type: str,
        target_date: date,
        export_name: str | None = None,
        status: ExportStatus | None = None,
    ) -> list[ExportRecord]:
        """Entries for a (type, date[, name][, status]) combination, newest first."""
        ...

    async def get(self, record_id: str) -> ExportRecord | None: ...

    async def delete(self, record_id: str) -> ExportRecord | None:
        """Remove an entry and return it, or None when absent."""
        ...

    async def clear(self) -> int:
        """Remove every entry and return how many were removed."""
        ...

    async def get_retry_state(self) -> RetryState | None: ...

    async def set_retry_state(self, state: RetryState) -> None: ...

    async def clear_retry_state(self) -> None: ...


class InMemoryStateStore:
    """Process-local state store."""

    def __init__(self) -> None:
        self._records: list[tuple[int, ExportRecord]] = []
        self._seq = itertools.count()
        self._retry: RetryState | None = None

    def _newest_first(self) -> list[ExportRecord]:
        ordered = sorted(self._records, key=lambda pair: (pair[1].created_at, pair[0]), reverse=True)
        return [record for _, record in ordered]

    async def append(self, record: ExportRecord, capacity: int) -> None:
        self._records.append((next(self._seq), record))
        if len(self._records) > capacity:
            ordered = sorted(self._records, key=lambda pair: (pair[1].created_at, pair[0]), reverse=True)
            evicted = ordered[capacity:]
            self._records = ordered[:capacity]
            logger.debug("Evicted {} history entries beyond capacity {}", len(evicted), capacity)

    async def list_records(self, limit: int | None = None) -> list[ExportRecord]:
        records = self._newest_first()
        return records if limit is None else records[:limit]

    async def find(
        self,
        export_type: str,
        target_date: date,
        export_name: str | None = None,
        status: ExportStatus | None = None,
    ) -> list[ExportRecord]:
        return [
            r
            for r in self._newest_first()
            if r.export_type == export_type
            and r.date == target_date
            and (export_name is None or r.export_name == export_name)
            and (status is None or r.status == status)
        ]

    async def get(self, record_id: str) -> ExportRecord | None:
        return next((r for _, r in self._records if r.id == record_id), None)

    async def delete(self, record_id: str) -> ExportRecord | None:
        for index, (_, record) in enumerate(self._records):
            if record.id == record_id:
                del self._records[index]
                return record
        return None

    async def clear(self) -> int:
        count = len(self._records)
        self._records.clear()
        return count

    async def get_retry_state(self) -> RetryState | None:
        return self._retry

    async def set_retry_state(self, state: RetryState) -> None:
        self._retry = state

    async def clear_retry_state(self) -> None:
        self._retry = None


def _to_record(row: ExportRecordRow) -> ExportRecord:
    return ExportRecord(
        id=row.record_id,
        export_type=row.export_type,
        export_name=row.export_name,
        date=row.export_date,
        file_name=row.file_name,
        file_path=row.file_path,
        object_key=row.object_key,
        status=ExportStatus(row.status),
        trigger=RunTrigger(row.trigger),
        file_size=row.file_size,
        file_exists=row.file_exists,
        created_at=_as_utc(row.created_at) or datetime.now(UTC),
    )


def _to_row(record: ExportRecord) -> ExportRecordRow:
    return ExportRecordRow(
        record_id=record.id,
        export_type=record.export_type,
        export_name=record.export_name,
        export_date=record.date,
        file_name=record.file_name,
        file_path=record.file_path,
        object_key=record.object_key,
        status=record.status.value,
        trigger=record.trigger.value,
        file_size=record.file_size,
        file_exists=record.file_exists,
        created_at=record.created_at,
    )


_NEWEST_FIRST = (ExportRecordRow.created_at.desc(), ExportRecordRow.seq.desc())


class SqlStateStore:
    """State store backed by async SQLAlchemy.

    Args:
        engine: Async engine for the state database.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(engine, expire_on_commit=False)

    async def create_schema(self) -> None:
        """Create the ledger and retry tables if they do not exist."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def append(self, record: ExportRecord, capacity: int) -> None:
        async with self._session_factory() as session:
            session.add(_to_row(record))
            await session.flush()

            total = (await session.execute(select(func.count()).select_from(ExportRecordRow))).scalar_one()
            if total > capacity:
                stale = select(ExportRecordRow.seq).order_by(*_NEWEST_FIRST).offset(capacity)
                stale_seqs = list((await session.execute(stale)).scalars())
                await session.execute(delete(ExportRecordRow).where(ExportRecordRow.seq.in_(stale_seqs)))
                logger.debug("Evicted {} history entries beyond capacity {}", len(stale_seqs), capacity)

            await session.commit()

    async def list_records(self, limit: int | None = None) -> list[ExportRecord]:
        query = select(ExportRecordRow).order_by(*_NEWEST_FIRST)
        if limit is not None:
            query = query.limit(limit)
        async with self._session_factory() as session:
            rows = (await session.execute(query)).scalars().all()
        return [_to_record(row) for row in rows]

    async def find(
        self,
        export_type: str,
        target_date: date,
        export_name: str | None = None,
        status: ExportStatus | None = None,
    ) -> list[ExportRecord]:
        query = select(ExportRecordRow).where(
            ExportRecordRow.export_type == export_type,
            ExportRecordRow.export_date == target_date,
        )
        if export_name is not None:
            query = query.where(ExportRecordRow.export_name == export_name)
        if status is not None:
            query = query.where(ExportRecordRow.status == status.value)
        async with self._session_factory() as session:
            rows = (await session.execute(query.order_by(*_NEWEST_FIRST))).scalars().all()
        return [_to_record(row) for row in rows]

    async def get(self, record_id: str) -> ExportRecord | None:
        async with self._session_factory() as session:
            row = (
                await session.execute(select(ExportRecordRow).where(ExportRecordRow.record_id == record_id))
            ).scalar_one_or_none()
        return _to_record(row) if row is not None else None

    async def delete(self, record_id: str) -> ExportRecord | None:
        async with self._session_factory() as session:
            row = (
                await session.execute(select(ExportRecordRow).where(ExportRecordRow.record_id == record_id))
            ).scalar_one_or_none()
            if row is None:
                return None
            record = _to_record(row)
            await session.delete(row)
            await session.commit()
        return record

    async def clear(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(delete(ExportRecordRow))
            await session.commit()
        return result.rowcount or 0

    async def get_retry_state(self) -> RetryState | None:
        async with self._session_factory() as session:
            row = await session.get(RetryStateRow, 1)
        if row is None:
            return None
        return RetryState(
            reason=row.reason,
            timestamp=_as_utc(row.timestamp) or datetime.now(UTC),
            attempt_count=row.attempt_count,
            next_run_at=_as_utc(row.next_run_at),
        )

    async def set_retry_state(self, state: RetryState) -> None:
        async with self._session_factory() as session:
            row = await session.get(RetryStateRow, 1)
            if row is None:
                row = RetryStateRow(id=1)
                session.add(row)
            row.reason = state.reason
            row.timestamp = state.timestamp
            row.attempt_count = state.attempt_count
            row.next_run_at = state.next_run_at
            await session.commit()

    async def clear_retry_state(self) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(RetryStateRow))
            await session.commit()
