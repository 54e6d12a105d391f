"""Deterministic staging filenames and object keys.

The same (export type, date) always maps to the same local path, which is
what lets a manual re-run overwrite a previous file in place.
"""

import re
from datetime import date
from pathlib import Path

_UNSAFE_CHARS = re.compile(r"[\\/\x00]+")


def build_export_filename(prefix: str, target_date: date) -> str:
    """Build ``<prefix>-<dd>-<mm>-<yyyy>.csv``.

    Args:
        prefix: File prefix (export type prefix or name).
        target_date: Calendar date the export covers, already in the
            reference timezone.

    Returns:
        The filename.
    """
    safe_prefix = _UNSAFE_CHARS.sub("-", prefix.strip())
    return f"{safe_prefix}-{target_date:%d}-{target_date:%m}-{target_date:%Y}.csv"


def build_local_path(export_root: Path, local_directory: str, filename: str) -> Path:
    """Staging path for a file: ``<export_root>/<local_directory>/<filename>``."""
    return export_root / local_directory / filename


def build_object_key(directory: str, filename: str, folder: str = "") -> str:
    """Object key ``[folder/]directory/filename`` with stray slashes removed."""
    parts = [folder.strip("/"), directory.strip("/"), filename]
    return "/".join(part for part in parts if part)
