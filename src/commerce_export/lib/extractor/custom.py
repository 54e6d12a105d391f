"""Custom extraction: free-form rows supplied by the data source."""

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from commerce_export.lib.datasource.base import CommerceDataSource, SkippedEntity
from commerce_export.lib.extractor.base import BaseExtractor, ExtractionResult, Row, format_datetime
from commerce_export.schemas.export_type import ExportKind, ExportTypeConfig


class CustomExtractor(BaseExtractor):
    """Passes source rows through, rendering datetime values in the reference timezone."""

    kind = ExportKind.CUSTOM

    async def fetch(
        self,
        source: CommerceDataSource,
        export_type: ExportTypeConfig,
        start: datetime | None,
        end: datetime | None,
        skipped: list[SkippedEntity],
    ) -> Sequence[Mapping[str, Any]]:
        return await source.fetch_custom_rows(export_type.id, start, end)

    def entity_id(self, entity: Mapping[str, Any]) -> object:
        return entity.get("id", "?")

    def build_rows(self, entity: Mapping[str, Any], result: ExtractionResult) -> list[Row]:
        return [{key: self._render(value) for key, value in entity.items()}]

    def _render(self, value: Any) -> Any:
        return format_datetime(value, self.tz) if isinstance(value, datetime) else value
