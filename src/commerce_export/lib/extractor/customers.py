"""Customer extraction: one row per customer account."""

from collections.abc import Sequence
from datetime import datetime

from commerce_export.lib.datasource.base import CommerceDataSource, SkippedEntity
from commerce_export.lib.datasource.types import Customer
from commerce_export.lib.extractor.base import (
    BaseExtractor,
    ExtractionResult,
    Row,
    address_fields,
    format_datetime,
    format_meta,
)
from commerce_export.schemas.export_type import ExportKind, ExportTypeConfig


class CustomerExtractor(BaseExtractor):
    """Customers are exported as a full snapshot; the date window is ignored."""

    kind = ExportKind.CUSTOMERS

    async def fetch(
        self,
        source: CommerceDataSource,
        export_type: ExportTypeConfig,
        start: datetime | None,
        end: datetime | None,
        skipped: list[SkippedEntity],
    ) -> Sequence[Customer]:
        return await source.fetch_customers(skipped)

    def entity_id(self, entity: Customer) -> object:
        return entity.customer_id

    def build_rows(self, entity: Customer, result: ExtractionResult) -> list[Row]:
        row: Row = {
            "customer_id": entity.customer_id,
            "first_name": entity.first_name,
            "last_name": entity.last_name,
            "user_login": entity.username,
            "email": entity.email,
            "date_registered": format_datetime(entity.date_registered, self.tz),
            "total_spent": entity.total_spent,
            "order_count": entity.order_count,
            "customer_meta": format_meta(entity.meta),
        }
        row.update(address_fields("billing", entity.billing))
        row.update(address_fields("shipping", entity.shipping))
        return [row]
