"""Exporter library: public API for CSV artifact generation.

Provides field-mapping defaults, the compound-field grammar, deterministic
filenames, and the mapping-driven CSV writer.
"""

from commerce_export.lib.exporter.compound import decode_compound, encode_compound, encode_entry
from commerce_export.lib.exporter.csv_writer import CsvWriteResult, build_header, build_row, write_export_csv
from commerce_export.lib.exporter.field_mappings import (
    DEFAULT_FIELD_MAPPINGS,
    DEFAULT_STATUSES,
    SOURCE_OF_ORIGIN_COLUMN,
    SOURCE_OF_ORIGIN_KEY,
    apply_source_of_origin,
    default_export_types,
    resolve_statuses,
)
from commerce_export.lib.exporter.filenames import build_export_filename, build_local_path, build_object_key

__all__ = [
    "DEFAULT_FIELD_MAPPINGS",
    "DEFAULT_STATUSES",
    "SOURCE_OF_ORIGIN_COLUMN",
    "SOURCE_OF_ORIGIN_KEY",
    "CsvWriteResult",
    "apply_source_of_origin",
    "build_export_filename",
    "build_header",
    "build_local_path",
    "build_object_key",
    "build_row",
    "decode_compound",
    "default_export_types",
    "encode_compound",
    "encode_entry",
    "resolve_statuses",
    "write_export_csv",
]
