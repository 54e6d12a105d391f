"""History library: ledger record types, statistics, and file integrity checks."""

from commerce_export.lib.history.ledger import compute_statistics, validate_file_integrity
from commerce_export.lib.history.types import (
    ExportRecord,
    ExportStatistics,
    ExportStatus,
    FileIntegrity,
    RetryState,
    RunTrigger,
    new_record_id,
)

__all__ = [
    "ExportRecord",
    "ExportStatistics",
    "ExportStatus",
    "FileIntegrity",
    "RetryState",
    "RunTrigger",
    "compute_statistics",
    "new_record_id",
    "validate_file_integrity",
]
