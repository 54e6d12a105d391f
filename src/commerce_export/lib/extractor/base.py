"""Extraction strategy interface and the per-run error collector."""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time, tzinfo
from typing import Any, ClassVar

from loguru import logger

from commerce_export.lib.datasource.base import CommerceDataSource, SkippedEntity
from commerce_export.lib.datasource.types import Address, MetaEntry
from commerce_export.schemas.export_type import ExportKind, ExportTypeConfig

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

Row = dict[str, Any]


@dataclass
class ExtractionIssue:
    """An entity or item skipped because its fields could not be computed."""

    entity_id: object
    reason: str
    item_id: object | None = None


@dataclass
class ExtractionResult:
    """Rows produced by one extraction plus everything that was skipped."""

    rows: list[Row] = field(default_factory=list)
    issues: list[ExtractionIssue] = field(default_factory=list)
    entity_count: int = 0

    @property
    def skipped_entities(self) -> list[object]:
        return [i.entity_id for i in self.issues if i.item_id is None]

    @property
    def skipped_items(self) -> list[tuple[object, object]]:
        return [(i.entity_id, i.item_id) for i in self.issues if i.item_id is not None]


def day_bounds(target_date: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """Start and end of a calendar day in ``tz``, both inclusive.

    Args:
        target_date: The calendar day.
        tz: Reference timezone.

    Returns:
        ``(00:00:00, 23:59:59.999999)`` as aware datetimes.
    """
    return (
        datetime.combine(target_date, time.min, tzinfo=tz),
        datetime.combine(target_date, time.max, tzinfo=tz),
    )


def format_datetime(value: datetime | None, tz: tzinfo) -> str:
    """Render a timestamp as ``YYYY-MM-DD HH:MM:SS`` in the reference timezone."""
    if value is None:
        return ""
    return value.astimezone(tz).strftime(DATETIME_FORMAT)


def format_meta(entries: Iterable[MetaEntry]) -> str:
    """Render metadata as ``key: value`` pairs joined by ``; ``."""
    return "; ".join(f"{m.key}: {m.value}" for m in entries if m.key)


def address_fields(prefix: str, address: Address) -> Row:
    """Flatten an address block into ``<prefix>_<field>`` keys."""
    return {
        f"{prefix}_first_name": address.first_name,
        f"{prefix}_last_name": address.last_name,
        f"{prefix}_full_name": address.full_name,
        f"{prefix}_company": address.company,
        f"{prefix}_email": address.email,
        f"{prefix}_phone": address.phone,
        f"{prefix}_address_1": address.address_1,
        f"{prefix}_address_2": address.address_2,
        f"{prefix}_postcode": address.postcode,
        f"{prefix}_city": address.city,
        f"{prefix}_state": address.state,
        f"{prefix}_state_code": address.state,
        f"{prefix}_country": address.country,
    }


class BaseExtractor(ABC):
    """One extraction strategy per export kind.

    Subclasses fetch entities and turn each into one or more rows.  A failure
    while mapping or building one entity is recorded in the result and the
    entity is skipped; it never aborts the extraction.  Data-source errors
    raised for the collection as a whole do propagate, failing the export type.

    Args:
        tz: Reference timezone used to render timestamps.
    """

    kind: ClassVar[ExportKind]

    def __init__(self, tz: tzinfo) -> None:
        self.tz = tz

    @abstractmethod
    async def fetch(
        self,
        source: CommerceDataSource,
        export_type: ExportTypeConfig,
        start: datetime | None,
        end: datetime | None,
        skipped: list[SkippedEntity],
    ) -> Sequence[Any]:
        """Pull the raw entities for one export.

        Entities the source could not map are appended to ``skipped``.
        """

    @abstractmethod
    def entity_id(self, entity: Any) -> object:
        """Identifier used when reporting a skipped entity."""

    @abstractmethod
    def build_rows(self, entity: Any, result: ExtractionResult) -> list[Row]:
        """Rows for one entity.  May record item-level issues on ``result``."""

    async def extract(
        self,
        source: CommerceDataSource,
        export_type: ExportTypeConfig,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> ExtractionResult:
        """Fetch entities and flatten them into rows.

        Args:
            source: Upstream data source.
            export_type: The export type being processed.
            start: Inclusive lower bound of the date window.
            end: Inclusive upper bound of the date window.

        Returns:
            ExtractionResult with the rows and any skipped entities or items.
        """
        skipped: list[SkippedEntity] = []
        entities = await self.fetch(source, export_type, start, end, skipped)
        result = ExtractionResult(entity_count=len(entities) + len(skipped))
        result.issues.extend(ExtractionIssue(entity_id=s.entity_id, reason=s.reason) for s in skipped)

        for entity in entities:
            entity_id = self._safe_entity_id(entity)
            try:
                rows = self.build_rows(entity, result)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Skipping {} {} in export {}: {}",
                    self.kind.value,
                    entity_id,
                    export_type.id,
                    exc,
                )
                result.issues.append(ExtractionIssue(entity_id=entity_id, reason=str(exc) or type(exc).__name__))
                continue
            result.rows.extend(rows)

        logger.info(
            "Extracted {} rows from {} {} for {} ({} issues)",
            len(result.rows),
            result.entity_count,
            self.kind.value,
            export_type.id,
            len(result.issues),
        )
        return result

    def _safe_entity_id(self, entity: Any) -> object:
        try:
            return self.entity_id(entity)
        except Exception:  # noqa: BLE001
            return repr(entity)
