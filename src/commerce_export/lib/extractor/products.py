"""Product extraction: one row per product."""

from collections.abc import Sequence
from datetime import datetime

from commerce_export.lib.datasource.base import CommerceDataSource, SkippedEntity
from commerce_export.lib.datasource.types import Product
from commerce_export.lib.exporter.field_mappings import resolve_statuses
from commerce_export.lib.extractor.base import BaseExtractor, ExtractionResult, Row, format_meta
from commerce_export.schemas.export_type import ExportKind, ExportTypeConfig


class ProductExtractor(BaseExtractor):
    kind = ExportKind.PRODUCTS

    async def fetch(
        self,
        source: CommerceDataSource,
        export_type: ExportTypeConfig,
        start: datetime | None,
        end: datetime | None,
        skipped: list[SkippedEntity],
    ) -> Sequence[Product]:
        return await source.fetch_products(resolve_statuses(export_type), skipped)

    def entity_id(self, entity: Product) -> object:
        return entity.product_id

    def build_rows(self, entity: Product, result: ExtractionResult) -> list[Row]:
        dimensions = " x ".join(d for d in (entity.length, entity.width, entity.height) if d)
        return [
            {
                "product_id": entity.product_id,
                "product_name": entity.name,
                "product_sku": entity.sku,
                "product_type": entity.product_type,
                "product_status": entity.status,
                "product_price": entity.price,
                "product_regular_price": entity.regular_price,
                "product_sale_price": entity.sale_price,
                "product_description": entity.description,
                "product_short_description": entity.short_description,
                "product_categories": ", ".join(entity.categories),
                "product_tags": ", ".join(entity.tags),
                "product_stock_quantity": entity.stock_quantity,
                "product_stock_status": entity.stock_status,
                "product_weight": entity.weight,
                "product_dimensions": dimensions,
                "product_meta": format_meta(entity.meta),
            }
        ]
