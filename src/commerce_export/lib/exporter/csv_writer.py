"""CSV export writer driven by ordered field mappings."""

import csv
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from commerce_export.schemas.export_type import FieldMapping


@dataclass
class CsvWriteResult:
    """Outcome of a successful CSV write."""

    file_name: str
    file_path: Path
    record_count: int
    file_size_bytes: int


def _render_cell(value: object) -> object:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "yes" if value else "no"
    return value


def build_header(mappings: Sequence[FieldMapping]) -> list[str]:
    """Header row: column names of the enabled mappings, in configured order."""
    return [m.column_name for m in mappings if m.enabled]


def build_row(record: Mapping[str, Any], mappings: Sequence[FieldMapping]) -> list[object]:
    """Data row for one record.  Missing keys render as empty cells."""
    return [_render_cell(record.get(m.data_source)) for m in mappings if m.enabled]


def write_export_csv(
    output_path: Path,
    records: Sequence[Mapping[str, Any]],
    mappings: Sequence[FieldMapping],
) -> CsvWriteResult | None:
    """Write records to a CSV file using the given field mappings.

    Zero records or zero enabled mappings produce no file at all (not a
    header-only file).  An existing file at ``output_path`` is overwritten.
    The file is written beside its destination and moved into place, so a
    half-written CSV never appears under the final name.

    Args:
        output_path: Destination path.
        records: Extracted records.
        mappings: Field mappings; disabled ones are ignored.

    Returns:
        CsvWriteResult, or None when no file was produced.
    """
    enabled = [m for m in mappings if m.enabled]
    if not enabled:
        logger.warning("No enabled field mappings for {}, no file produced", output_path.name)
        return None
    if not records:
        logger.info("No records for {}, no file produced", output_path.name)
        return None

    output_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = output_path.with_name(f".{output_path.name}.tmp")

    count = 0
    try:
        with tmp_path.open("w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f, lineterminator="\n")
            writer.writerow(build_header(enabled))
            for record in records:
                writer.writerow(build_row(record, enabled))
                count += 1
        os.replace(tmp_path, output_path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise

    file_size = output_path.stat().st_size
    logger.info("Wrote {} ({} records, {} bytes)", output_path, count, file_size)

    return CsvWriteResult(
        file_name=output_path.name,
        file_path=output_path,
        record_count=count,
        file_size_bytes=file_size,
    )
