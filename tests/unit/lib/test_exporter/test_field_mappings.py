"""Unit tests for default mappings and mapping helpers."""

from commerce_export.lib.exporter.field_mappings import (
    DEFAULT_FIELD_MAPPINGS,
    SOURCE_OF_ORIGIN_COLUMN,
    SOURCE_OF_ORIGIN_KEY,
    apply_source_of_origin,
    default_export_types,
    resolve_statuses,
)
from commerce_export.schemas.export_type import ExportKind, ExportTypeConfig, FieldMapping


class TestApplySourceOfOrigin:
    """Tests for apply_source_of_origin."""

    def test_unchanged_when_not_requested(self) -> None:
        """Mappings pass through when the column is not requested."""
        mappings = [FieldMapping(data_source="order_id", column_name="Order ID")]
        assert apply_source_of_origin(mappings, include=False) == mappings

    def test_appended_last(self) -> None:
        """The canonical mapping is placed at the end."""
        mappings = [FieldMapping(data_source="order_id", column_name="Order ID")]

        result = apply_source_of_origin(mappings, include=True)

        assert [m.data_source for m in result] == ["order_id", SOURCE_OF_ORIGIN_KEY]
        assert result[-1].column_name == SOURCE_OF_ORIGIN_COLUMN

    def test_user_duplicates_are_replaced(self) -> None:
        """User mappings for the canonical key or column are dropped."""
        mappings = [
            FieldMapping(data_source=SOURCE_OF_ORIGIN_KEY, column_name="Origin"),
            FieldMapping(data_source="order_id", column_name="Order ID"),
            FieldMapping(data_source="site", column_name="source of origin"),
        ]

        result = apply_source_of_origin(mappings, include=True)

        assert [m.data_source for m in result] == ["order_id", SOURCE_OF_ORIGIN_KEY]


class TestResolveStatuses:
    """Tests for resolve_statuses."""

    def test_configured_statuses_win(self) -> None:
        """An explicit allow-list is used as-is."""
        export_type = ExportTypeConfig(id="x", name="X", statuses=["refunded"])
        assert resolve_statuses(export_type) == ["refunded"]

    def test_order_default(self) -> None:
        """Orders default to completed, processing, and on-hold."""
        export_type = ExportTypeConfig(id="x", name="X", kind=ExportKind.ORDERS)
        assert resolve_statuses(export_type) == ["completed", "processing", "on-hold"]

    def test_customers_unfiltered(self) -> None:
        """Customers have no status filter."""
        export_type = ExportTypeConfig(id="x", name="X", kind=ExportKind.CUSTOMERS)
        assert resolve_statuses(export_type) is None


class TestDefaults:
    """Tests for the default catalogue."""

    def test_every_kind_has_an_entry(self) -> None:
        """Each export kind has a (possibly empty) default mapping list."""
        assert set(DEFAULT_FIELD_MAPPINGS) == set(ExportKind)

    def test_default_mapping_keys_are_unique(self) -> None:
        """No default list repeats a data source key."""
        for mappings in DEFAULT_FIELD_MAPPINGS.values():
            keys = [m.data_source for m in mappings]
            assert len(keys) == len(set(keys))

    def test_default_export_types_are_valid_order_exports(self) -> None:
        """The stock definitions are enabled order exports with columns."""
        types = default_export_types()

        assert [t.id for t in types] == ["web_sales", "web_sale_lines"]
        assert all(t.kind == ExportKind.ORDERS and t.enabled and t.enabled_mappings for t in types)
        assert not any(m.data_source.startswith("item_") for m in types[0].field_mappings)
        assert any(m.data_source == "item_name" for m in types[1].field_mappings)
