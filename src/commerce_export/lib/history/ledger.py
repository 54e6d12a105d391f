"""Pure helpers over history records: statistics and file integrity."""

from collections import Counter
from collections.abc import Iterable
from pathlib import Path

from commerce_export.lib.history.types import ExportRecord, ExportStatistics, ExportStatus, FileIntegrity

CSV_DELIMITER = ","


def compute_statistics(records: Iterable[ExportRecord]) -> ExportStatistics:
    """Aggregate counts, sizes, and per-type / per-date histograms.

    Args:
        records: History entries.

    Returns:
        ExportStatistics.
    """
    stats = ExportStatistics()
    by_type: Counter[str] = Counter()
    by_date: Counter[str] = Counter()

    for record in records:
        stats.total_exports += 1
        if record.status == ExportStatus.COMPLETED:
            stats.successful_exports += 1
        else:
            stats.failed_exports += 1
        stats.total_file_size += record.file_size
        by_type[record.export_type] += 1
        by_date[record.date.isoformat()] += 1

    stats.exports_by_type = dict(by_type)
    stats.exports_by_date = dict(sorted(by_date.items(), reverse=True))
    return stats


def validate_file_integrity(path: str | Path, columns: int | None = None) -> FileIntegrity:
    """Check a staged CSV exists, is non-empty, and has a delimited first line.

    Not a full parse.  A file known to hold a single column has no delimiter
    to look for, so only the existence and size checks apply to it.

    Args:
        path: File to check.
        columns: Number of columns the file was written with, when known.

    Returns:
        FileIntegrity with ``valid`` and an error message when invalid.
    """
    file_path = Path(path)
    if not file_path.is_file():
        return FileIntegrity(valid=False, error="File does not exist")

    size = file_path.stat().st_size
    if size == 0:
        return FileIntegrity(valid=False, error="File is empty")

    try:
        with file_path.open(encoding="utf-8", errors="replace") as f:
            first_line = f.readline()
    except OSError as exc:
        return FileIntegrity(valid=False, error=f"File is not readable: {exc}", file_size=size)

    if columns != 1 and CSV_DELIMITER not in first_line:
        return FileIntegrity(valid=False, error="Invalid CSV format", file_size=size)

    return FileIntegrity(valid=True, file_size=size)
