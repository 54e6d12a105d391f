"""Unit tests for the mapping-driven CSV writer."""

import csv
from pathlib import Path

from commerce_export.lib.exporter.compound import encode_compound
from commerce_export.lib.exporter.csv_writer import build_header, build_row, write_export_csv
from commerce_export.schemas.export_type import FieldMapping


def _mapping(source: str, column: str, enabled: bool = True) -> FieldMapping:
    return FieldMapping(data_source=source, column_name=column, enabled=enabled)


class TestBuildHeaderAndRow:
    """Tests for build_header and build_row."""

    def test_header_follows_mapping_order_and_skips_disabled(self) -> None:
        """Only enabled mappings contribute columns, in configured order."""
        mappings = [_mapping("b", "B"), _mapping("a", "A", enabled=False), _mapping("c", "C")]
        assert build_header(mappings) == ["B", "C"]

    def test_missing_keys_render_empty(self) -> None:
        """A key absent from the record renders as an empty cell."""
        assert build_row({"a": 1}, [_mapping("a", "A"), _mapping("b", "B")]) == [1, ""]

    def test_none_and_bool_rendering(self) -> None:
        """None renders empty and booleans render yes/no."""
        row = build_row({"a": None, "b": True, "c": False}, [_mapping("a", "A"), _mapping("b", "B"), _mapping("c", "C")])
        assert row == ["", "yes", "no"]


class TestWriteExportCsv:
    """Tests for write_export_csv."""

    def test_single_column_single_row_exact_bytes(self, tmp_path: Path) -> None:
        """One mapping and one record produce exactly a header line and a data line."""
        output = tmp_path / "orders.csv"

        result = write_export_csv(output, [{"order_id": 123}], [_mapping("order_id", "Order ID")])

        assert result is not None
        assert output.read_text(encoding="utf-8") == "Order ID\n123\n"
        assert result.record_count == 1
        assert result.file_size_bytes == len(b"Order ID\n123\n")
        assert result.file_name == "orders.csv"

    def test_zero_records_produces_no_file(self, tmp_path: Path) -> None:
        """No records means no file at all, not a header-only file."""
        output = tmp_path / "orders.csv"

        result = write_export_csv(output, [], [_mapping("order_id", "Order ID")])

        assert result is None
        assert not output.exists()

    def test_zero_enabled_mappings_produces_no_file(self, tmp_path: Path) -> None:
        """All mappings disabled means no file."""
        output = tmp_path / "orders.csv"

        result = write_export_csv(output, [{"order_id": 1}], [_mapping("order_id", "Order ID", enabled=False)])

        assert result is None
        assert not output.exists()

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        """An existing file at the destination is replaced."""
        output = tmp_path / "orders.csv"
        output.write_text("stale content\n")

        write_export_csv(output, [{"order_id": 9}], [_mapping("order_id", "Order ID")])

        assert output.read_text(encoding="utf-8") == "Order ID\n9\n"

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        """Missing staging directories are created."""
        output = tmp_path / "a" / "b" / "orders.csv"

        write_export_csv(output, [{"order_id": 1}], [_mapping("order_id", "Order ID")])

        assert output.is_file()

    def test_no_temporary_file_left_behind(self, tmp_path: Path) -> None:
        """The temporary file is moved into place."""
        output = tmp_path / "orders.csv"

        write_export_csv(output, [{"order_id": 1}], [_mapping("order_id", "Order ID")])

        assert sorted(p.name for p in tmp_path.iterdir()) == ["orders.csv"]

    def test_compound_cells_are_quoted(self, tmp_path: Path) -> None:
        """A compound cell with commas survives as one CSV field."""
        output = tmp_path / "orders.csv"
        cell = encode_compound([{"id": 1, "name": "Widget"}, {"id": 2, "name": "Gadget"}])

        write_export_csv(
            output,
            [{"order_id": 5, "line_items": cell}],
            [_mapping("order_id", "Order ID"), _mapping("line_items", "Line Items")],
        )

        with output.open(newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert rows == [["Order ID", "Line Items"], ["5", cell]]

    def test_one_row_per_record(self, tmp_path: Path) -> None:
        """Every record becomes one data row."""
        output = tmp_path / "orders.csv"
        records = [{"order_id": i} for i in range(5)]

        result = write_export_csv(output, records, [_mapping("order_id", "Order ID")])

        assert result is not None
        assert result.record_count == 5
        assert output.read_text(encoding="utf-8").splitlines() == ["Order ID", "0", "1", "2", "3", "4"]
