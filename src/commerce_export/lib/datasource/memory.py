"""In-memory data source for fixtures, dry runs, and tests."""

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from commerce_export.lib.datasource.base import CommerceDataSource, DataSourceError, SkippedEntity
from commerce_export.lib.datasource.types import Coupon, Customer, Order, Product


def _in_range(value: datetime | None, start: datetime | None, end: datetime | None) -> bool:
    if value is None:
        return start is None and end is None
    if start is not None and value < start:
        return False
    return not (end is not None and value > end)


class InMemoryDataSource(CommerceDataSource):
    """Serves entities from Python lists.

    Args:
        orders: Orders to serve.
        customers: Customers to serve.
        products: Products to serve.
        coupons: Coupons to serve.
        custom_rows: Rows keyed by custom export type id; each row may carry
            a ``date`` datetime used for range filtering.
        available: When False, ``check_available`` raises.
    """

    def __init__(
        self,
        *,
        orders: Sequence[Order] = (),
        customers: Sequence[Customer] = (),
        products: Sequence[Product] = (),
        coupons: Sequence[Coupon] = (),
        custom_rows: Mapping[str, Sequence[Mapping[str, Any]]] | None = None,
        available: bool = True,
    ) -> None:
        self.orders = list(orders)
        self.customers = list(customers)
        self.products = list(products)
        self.coupons = list(coupons)
        self.custom_rows = {k: list(v) for k, v in (custom_rows or {}).items()}
        self.available = available

    @property
    def source_name(self) -> str:
        return "memory"

    async def check_available(self) -> None:
        if not self.available:
            raise DataSourceError(self.source_name, "data source marked unavailable")

    async def fetch_orders(
        self,
        start: datetime | None,
        end: datetime | None,
        statuses: Sequence[str] | None,
        skipped: list[SkippedEntity] | None = None,
    ) -> list[Order]:
        return [
            o
            for o in self.orders
            if _in_range(o.date_created, start, end) and (statuses is None or o.status in statuses)
        ]

    async def fetch_customers(self, skipped: list[SkippedEntity] | None = None) -> list[Customer]:
        return list(self.customers)

    async def fetch_products(
        self,
        statuses: Sequence[str] | None,
        skipped: list[SkippedEntity] | None = None,
    ) -> list[Product]:
        return [p for p in self.products if statuses is None or p.status in statuses]

    async def fetch_coupons(
        self,
        statuses: Sequence[str] | None,
        skipped: list[SkippedEntity] | None = None,
    ) -> list[Coupon]:
        return [c for c in self.coupons if statuses is None or c.status in statuses]

    async def fetch_custom_rows(
        self,
        export_type_id: str,
        start: datetime | None,
        end: datetime | None,
    ) -> list[Mapping[str, Any]]:
        if export_type_id not in self.custom_rows:
            return await super().fetch_custom_rows(export_type_id, start, end)
        rows = self.custom_rows[export_type_id]
        if start is None and end is None:
            return list(rows)
        return [r for r in rows if "date" not in r or _in_range(r["date"], start, end)]
