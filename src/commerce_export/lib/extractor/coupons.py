"""Coupon extraction: one row per coupon."""

from collections.abc import Sequence
from datetime import datetime

from commerce_export.lib.datasource.base import CommerceDataSource, SkippedEntity
from commerce_export.lib.datasource.types import Coupon
from commerce_export.lib.exporter.field_mappings import resolve_statuses
from commerce_export.lib.extractor.base import BaseExtractor, ExtractionResult, Row, format_datetime, format_meta
from commerce_export.schemas.export_type import ExportKind, ExportTypeConfig


def _join_ids(values: Sequence[int]) -> str:
    return ", ".join(str(v) for v in values)


class CouponExtractor(BaseExtractor):
    kind = ExportKind.COUPONS

    async def fetch(
        self,
        source: CommerceDataSource,
        export_type: ExportTypeConfig,
        start: datetime | None,
        end: datetime | None,
        skipped: list[SkippedEntity],
    ) -> Sequence[Coupon]:
        return await source.fetch_coupons(resolve_statuses(export_type), skipped)

    def entity_id(self, entity: Coupon) -> object:
        return entity.coupon_id

    def build_rows(self, entity: Coupon, result: ExtractionResult) -> list[Row]:
        return [
            {
                "coupon_id": entity.coupon_id,
                "coupon_code": entity.code,
                "coupon_type": entity.discount_type,
                "coupon_amount": entity.amount,
                "coupon_description": entity.description,
                "coupon_date_expires": format_datetime(entity.date_expires, self.tz),
                "coupon_usage_count": entity.usage_count,
                "coupon_individual_use": entity.individual_use,
                "coupon_product_ids": _join_ids(entity.product_ids),
                "coupon_excluded_product_ids": _join_ids(entity.excluded_product_ids),
                "coupon_product_categories": _join_ids(entity.product_categories),
                "coupon_excluded_product_categories": _join_ids(entity.excluded_product_categories),
                "coupon_usage_limit": entity.usage_limit,
                "coupon_usage_limit_per_user": entity.usage_limit_per_user,
                "coupon_limit_usage_to_x_items": entity.limit_usage_to_x_items,
                "coupon_free_shipping": entity.free_shipping,
                "coupon_meta": format_meta(entity.meta),
            }
        ]
