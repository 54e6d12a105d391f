"""Unit tests for the customer, product, coupon, and custom strategies and the registry."""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import pytest

from commerce_export.lib.datasource import Coupon, Customer, DataSourceError, InMemoryDataSource, MetaEntry, Product
from commerce_export.lib.extractor import (
    CouponExtractor,
    CustomerExtractor,
    CustomExtractor,
    OrderExtractor,
    ProductExtractor,
    get_extractor,
)
from commerce_export.schemas.export_type import ExportKind, ExportTypeConfig

_UTC = ZoneInfo("UTC")


class TestRegistry:
    """Tests for get_extractor."""

    @pytest.mark.parametrize(
        ("kind", "cls"),
        [
            (ExportKind.ORDERS, OrderExtractor),
            (ExportKind.CUSTOMERS, CustomerExtractor),
            (ExportKind.PRODUCTS, ProductExtractor),
            (ExportKind.COUPONS, CouponExtractor),
            (ExportKind.CUSTOM, CustomExtractor),
        ],
    )
    def test_strategy_per_kind(self, kind: ExportKind, cls: type) -> None:
        """Each export kind maps to its strategy."""
        extractor = get_extractor(kind, _UTC)
        assert isinstance(extractor, cls)
        assert extractor.kind == kind


class TestCustomerExtractor:
    """Tests for CustomerExtractor."""

    async def test_full_snapshot(self) -> None:
        """Every customer becomes one row regardless of the date window."""
        source = InMemoryDataSource(
            customers=[
                Customer(customer_id=1, email="a@example.com", username="a", meta=[MetaEntry("tier", "gold")]),
                Customer(customer_id=2, email="b@example.com", date_registered=datetime(2020, 1, 1, tzinfo=UTC)),
            ]
        )
        export_type = ExportTypeConfig(id="customers", name="Customers", kind=ExportKind.CUSTOMERS)

        result = await CustomerExtractor(_UTC).extract(source, export_type)

        assert [r["customer_id"] for r in result.rows] == [1, 2]
        assert result.rows[0]["user_login"] == "a"
        assert result.rows[0]["customer_meta"] == "tier: gold"
        assert result.rows[1]["date_registered"] == "2020-01-01 00:00:00"


class TestProductExtractor:
    """Tests for ProductExtractor."""

    async def test_published_products_only_by_default(self) -> None:
        """Products default to the publish status."""
        source = InMemoryDataSource(
            products=[
                Product(product_id=1, name="Widget", categories=["Tools", "Garden"]),
                Product(product_id=2, name="Draft thing", status="draft"),
            ]
        )
        export_type = ExportTypeConfig(id="products", name="Products", kind=ExportKind.PRODUCTS)

        result = await ProductExtractor(_UTC).extract(source, export_type)

        assert [r["product_id"] for r in result.rows] == [1]
        assert result.rows[0]["product_categories"] == "Tools, Garden"


class TestCouponExtractor:
    """Tests for CouponExtractor."""

    async def test_coupon_fields(self) -> None:
        """Coupon id lists are joined and booleans are left for the writer to render."""
        source = InMemoryDataSource(
            coupons=[Coupon(coupon_id=5, code="SPRING10", amount="10", product_ids=[1, 2], free_shipping=True)]
        )
        export_type = ExportTypeConfig(id="coupons", name="Coupons", kind=ExportKind.COUPONS)

        result = await CouponExtractor(_UTC).extract(source, export_type)

        row = result.rows[0]
        assert row["coupon_code"] == "SPRING10"
        assert row["coupon_free_shipping"] is True
        assert row["coupon_product_ids"] == "1, 2"


class TestCustomExtractor:
    """Tests for CustomExtractor."""

    async def test_rows_pass_through_with_dates_rendered(self) -> None:
        """Custom rows are passed through and datetimes are formatted."""
        when = datetime(2025, 3, 14, 8, 0, tzinfo=UTC)
        source = InMemoryDataSource(custom_rows={"feed": [{"id": 1, "date": when, "value": "x"}]})
        export_type = ExportTypeConfig(id="feed", name="Feed", kind=ExportKind.CUSTOM)

        result = await CustomExtractor(_UTC).extract(source, export_type)

        assert result.rows == [{"id": 1, "date": "2025-03-14 08:00:00", "value": "x"}]

    async def test_unknown_feed_raises(self) -> None:
        """A feed the source does not provide is a data-source error."""
        export_type = ExportTypeConfig(id="missing", name="Missing", kind=ExportKind.CUSTOM)

        with pytest.raises(DataSourceError):
            await CustomExtractor(_UTC).extract(InMemoryDataSource(), export_type)
