"""History ledger data types."""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import StrEnum


class ExportStatus(StrEnum):
    """Outcome recorded for one export attempt."""

    COMPLETED = "completed"
    FAILED = "failed"


class RunTrigger(StrEnum):
    """What started a run."""

    SCHEDULED = "scheduled"
    MANUAL = "manual"


def new_record_id() -> str:
    return f"export_{uuid.uuid4().hex}"


@dataclass
class ExportRecord:
    """One entry in the append-only history ledger."""

    export_type: str
    export_name: str
    date: date
    file_name: str
    file_path: str
    status: ExportStatus
    object_key: str | None = None
    trigger: RunTrigger = RunTrigger.SCHEDULED
    file_size: int = 0
    file_exists: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    id: str = field(default_factory=new_record_id)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "export_type": self.export_type,
            "export_name": self.export_name,
            "date": self.date.isoformat(),
            "file_name": self.file_name,
            "file_path": self.file_path,
            "object_key": self.object_key,
            "status": self.status.value,
            "trigger": self.trigger.value,
            "file_size": self.file_size,
            "file_exists": self.file_exists,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class RetryState:
    """Marker that the last run failed entirely and a retry is pending."""

    reason: str
    timestamp: datetime
    attempt_count: int
    next_run_at: datetime | None = None


@dataclass
class ExportStatistics:
    """Aggregates over the history ledger."""

    total_exports: int = 0
    successful_exports: int = 0
    failed_exports: int = 0
    total_file_size: int = 0
    exports_by_type: dict[str, int] = field(default_factory=dict)
    exports_by_date: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "total_exports": self.total_exports,
            "successful_exports": self.successful_exports,
            "failed_exports": self.failed_exports,
            "total_file_size": self.total_file_size,
            "exports_by_type": dict(self.exports_by_type),
            "exports_by_date": dict(self.exports_by_date),
        }


@dataclass
class FileIntegrity:
    """Result of the cheap CSV sanity check."""

    valid: bool
    error: str | None = None
    file_size: int = 0
