"""Unit tests for the in-memory data source."""

from datetime import UTC, datetime

import pytest

from commerce_export.lib.datasource import DataSourceError, InMemoryDataSource


class TestInMemoryDataSource:
    """Tests for InMemoryDataSource."""

    async def test_range_is_inclusive(self, data_source) -> None:
        """Orders exactly on the window bounds are included."""
        start = datetime(2025, 3, 14, 9, 30, tzinfo=UTC)
        end = datetime(2025, 3, 14, 18, 0, tzinfo=UTC)

        orders = await data_source.fetch_orders(start, end, None)

        assert [o.order_id for o in orders] == [101, 102]

    async def test_status_filter(self, data_source) -> None:
        """Only allowed statuses are returned."""
        orders = await data_source.fetch_orders(None, None, ["processing"])
        assert [o.order_id for o in orders] == [102]

    async def test_count_orders_matches_fetch(self, data_source) -> None:
        """The default count implementation counts fetched orders."""
        assert await data_source.count_orders(None, None, ["completed"]) == 2

    async def test_unavailable(self) -> None:
        """An unavailable source fails its availability check."""
        with pytest.raises(DataSourceError) as exc_info:
            await InMemoryDataSource(available=False).check_available()
        assert exc_info.value.source_name == "memory"
