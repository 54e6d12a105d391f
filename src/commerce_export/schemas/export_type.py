"""Export type Pydantic v2 schemas and the JSON-backed configuration loader."""

import json
import re
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator

from commerce_export.core.errors import ConfigurationError


def slugify(value: str) -> str:
    """Lowercase a display name and collapse non-alphanumerics to single hyphens."""
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


class ExportKind(StrEnum):
    """Kind of domain entity an export type extracts."""

    ORDERS = "orders"
    CUSTOMERS = "customers"
    PRODUCTS = "products"
    COUPONS = "coupons"
    CUSTOM = "custom"


class Frequency(StrEnum):
    """Cadence of a recurring export."""

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class FieldMapping(BaseModel):
    """One (data source key -> output column) pair.  Order fixes CSV column order."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    data_source: str = Field(..., min_length=1, max_length=100)
    column_name: str = Field(..., min_length=1, max_length=200)


class ExportTypeConfig(BaseModel):
    """A named, independently schedulable extraction + upload configuration."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1, max_length=100, pattern=r"^[A-Za-z0-9_\-]+$")
    name: str = Field(..., min_length=1, max_length=200)
    kind: ExportKind = Field(default=ExportKind.ORDERS, alias="type")
    enabled: bool = True
    frequency: Frequency = Frequency.DAILY
    time: str = Field(default="01:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    s3_folder: str = ""
    local_folder: str = Field(default="", alias="local_uploads_folder")
    file_prefix: str = ""
    description: str = ""
    statuses: list[str] | None = None
    field_mappings: list[FieldMapping] = Field(default_factory=list)
    include_source_of_origin: bool = False

    @field_validator("s3_folder", "local_folder")
    @classmethod
    def strip_slashes(cls, v: str) -> str:
        return v.strip().strip("/")

    @model_validator(mode="after")
    def reject_duplicate_sources(self) -> "ExportTypeConfig":
        seen: set[str] = set()
        for mapping in self.field_mappings:
            if mapping.data_source in seen:
                msg = f"Duplicate data_source {mapping.data_source!r} in field mappings of {self.id!r}"
                raise ValueError(msg)
            seen.add(mapping.data_source)
        return self

    @property
    def enabled_mappings(self) -> list[FieldMapping]:
        """Enabled field mappings in configured order."""
        return [m for m in self.field_mappings if m.enabled]

    @property
    def prefix(self) -> str:
        """Filename prefix, falling back to the export type name."""
        return self.file_prefix or self.name

    @property
    def s3_directory(self) -> str:
        """Object-storage directory for this export type."""
        return self.s3_folder or slugify(self.name)

    @property
    def local_directory(self) -> str:
        """Local staging subdirectory for this export type."""
        return self.local_folder or slugify(self.name)


_EXPORT_TYPES_ADAPTER = TypeAdapter(list[ExportTypeConfig])


def validate_export_types(data: object) -> list[ExportTypeConfig]:
    """Validate raw export type definitions.

    Args:
        data: Parsed JSON (a list of export type dicts).

    Returns:
        Validated export type configurations.

    Raises:
        ConfigurationError: If any definition is invalid or IDs repeat.
    """
    try:
        export_types = _EXPORT_TYPES_ADAPTER.validate_python(data)
    except ValidationError as exc:
        msg = f"Invalid export type configuration: {exc}"
        raise ConfigurationError(msg) from exc

    ids = [et.id for et in export_types]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        msg = f"Duplicate export type ids: {', '.join(duplicates)}"
        raise ConfigurationError(msg)
    return export_types


def load_export_types(path: Path) -> list[ExportTypeConfig]:
    """Load export type definitions from a JSON document.

    A missing file means nothing is configured yet and yields an empty list.

    Args:
        path: Path to the JSON document.

    Returns:
        Validated export type configurations.

    Raises:
        ConfigurationError: If the file is not valid JSON or fails validation.
    """
    if not path.exists():
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        msg = f"{path} is not valid JSON: {exc}"
        raise ConfigurationError(msg) from exc
    return validate_export_types(data)


def save_export_types(path: Path, export_types: list[ExportTypeConfig]) -> None:
    """Write export type definitions to a JSON document."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = _EXPORT_TYPES_ADAPTER.dump_python(export_types, mode="json", by_alias=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
