"""Shared test fixtures for settings, state stores, sample store data, and export types."""

from collections.abc import AsyncGenerator
from datetime import UTC, date, datetime
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from commerce_export.core.config import Settings
from commerce_export.lib.datasource import Address, InMemoryDataSource, Order, OrderItem
from commerce_export.models.base import Base
from commerce_export.schemas.export_type import ExportKind, ExportTypeConfig, FieldMapping
from commerce_export.services.history_service import ExportHistory
from commerce_export.services.state_store import InMemoryStateStore, SqlStateStore

TEST_BUCKET = "test-bucket"
EXPORT_DAY = date(2025, 3, 14)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Test application settings with staging under a temporary directory."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'state.db'}",
        export_root=str(tmp_path / "exports"),
        export_types_file=str(tmp_path / "export_types.json"),
        jobs_file=str(tmp_path / "jobs.json"),
        reference_timezone="Europe/London",
        s3_bucket=TEST_BUCKET,
        s3_access_key_id="testing",
        s3_secret_access_key="testing",
        s3_region="us-east-1",
        site_name="Test Shop",
        notifications_enabled=False,
        run_timeout_seconds=30,
    )


@pytest.fixture
def memory_store() -> InMemoryStateStore:
    """Empty in-memory state store."""
    return InMemoryStateStore()


@pytest.fixture
def history(memory_store: InMemoryStateStore) -> ExportHistory:
    """History ledger over the in-memory store."""
    return ExportHistory(memory_store)


@pytest.fixture
async def async_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Create a file-backed async SQLite engine for testing."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def sql_store(async_engine: AsyncEngine) -> SqlStateStore:
    """SQL state store over the test engine."""
    return SqlStateStore(async_engine)


@pytest.fixture
def sample_orders() -> list[Order]:
    """Two orders on the export day and one the day after."""
    return [
        Order(
            order_id=101,
            number="101",
            date_created=datetime(2025, 3, 14, 9, 30, tzinfo=UTC),
            status="completed",
            currency="GBP",
            total="30.00",
            billing=Address(first_name="Ada", last_name="Lovelace", email="ada@example.com"),
            items=[
                OrderItem(item_id=1, name="Widget", product_id=11, sku="W-1", quantity=2, total="20.00"),
                OrderItem(item_id=2, name="Gadget", product_id=12, sku="G-1", quantity=1, total="10.00"),
            ],
        ),
        Order(
            order_id=102,
            number="102",
            date_created=datetime(2025, 3, 14, 18, 0, tzinfo=UTC),
            status="processing",
            currency="GBP",
            total="5.00",
        ),
        Order(
            order_id=103,
            number="103",
            date_created=datetime(2025, 3, 15, 8, 0, tzinfo=UTC),
            status="completed",
            currency="GBP",
            total="12.00",
            items=[OrderItem(item_id=3, name="Widget", product_id=11, quantity=1, total="12.00")],
        ),
    ]


@pytest.fixture
def data_source(sample_orders: list[Order]) -> InMemoryDataSource:
    """In-memory data source serving the sample orders."""
    return InMemoryDataSource(orders=sample_orders)


@pytest.fixture
def order_export_type() -> ExportTypeConfig:
    """A line-item order export."""
    return ExportTypeConfig(
        id="web_sales",
        name="Web Sales",
        kind=ExportKind.ORDERS,
        s3_folder="WebsiteSales",
        file_prefix="WebSales",
        statuses=["completed", "processing"],
        field_mappings=[
            FieldMapping(data_source="order_id", column_name="Order ID"),
            FieldMapping(data_source="item_name", column_name="Item"),
            FieldMapping(data_source="item_quantity", column_name="Qty"),
            FieldMapping(data_source="billing_email", column_name="Email", enabled=False),
        ],
    )


@pytest.fixture
def second_export_type() -> ExportTypeConfig:
    """An order-level export."""
    return ExportTypeConfig(
        id="web_orders",
        name="Web Orders",
        kind=ExportKind.ORDERS,
        s3_folder="WebsiteOrders",
        file_prefix="WebOrders",
        field_mappings=[
            FieldMapping(data_source="order_id", column_name="Order ID"),
            FieldMapping(data_source="order_total", column_name="Total"),
        ],
    )
