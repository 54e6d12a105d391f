"""Extractor library: one extraction strategy per export kind.

Public API:
    - BaseExtractor: Abstract strategy interface
    - ExtractionResult / ExtractionIssue: Rows plus the per-run error collector
    - get_extractor: Strategy registry keyed by ExportKind
    - day_bounds: Start and end of a calendar day in the reference timezone
"""

from datetime import tzinfo

from commerce_export.lib.extractor.base import (
    BaseExtractor,
    ExtractionIssue,
    ExtractionResult,
    Row,
    day_bounds,
    format_datetime,
)
from commerce_export.lib.extractor.coupons import CouponExtractor
from commerce_export.lib.extractor.custom import CustomExtractor
from commerce_export.lib.extractor.customers import CustomerExtractor
from commerce_export.lib.extractor.orders import OrderExtractor
from commerce_export.lib.extractor.products import ProductExtractor
from commerce_export.schemas.export_type import ExportKind

_EXTRACTORS: dict[ExportKind, type[BaseExtractor]] = {
    ExportKind.ORDERS: OrderExtractor,
    ExportKind.CUSTOMERS: CustomerExtractor,
    ExportKind.PRODUCTS: ProductExtractor,
    ExportKind.COUPONS: CouponExtractor,
    ExportKind.CUSTOM: CustomExtractor,
}


def get_extractor(kind: ExportKind, tz: tzinfo) -> BaseExtractor:
    """Get the extraction strategy for an export kind.

    Args:
        kind: Export kind.
        tz: Reference timezone for rendered timestamps.

    Returns:
        An extractor instance.

    Raises:
        ValueError: If no strategy is registered for the kind.
    """
    cls = _EXTRACTORS.get(kind)
    if cls is None:
        msg = f"No extractor for export kind {kind!r}. Available: {[k.value for k in _EXTRACTORS]}"
        raise ValueError(msg)
    return cls(tz)


__all__ = [
    "BaseExtractor",
    "CouponExtractor",
    "CustomExtractor",
    "CustomerExtractor",
    "ExtractionIssue",
    "ExtractionResult",
    "OrderExtractor",
    "ProductExtractor",
    "Row",
    "day_bounds",
    "format_datetime",
    "get_extractor",
]
