"""Tests for TableWidget."""

import pytest
from dyn_form.config import FormEngineConfig
from dyn_form.engine.table_widget import TableWidget
from dyn_form.exceptions import FormEngineError, SchemaMismatch, UnknownColumnError


@pytest.fixture
def inventory(inventory_config, engine_config):
    return TableWidget("inventory", inventory_config, engine_config)


@pytest.fixture
def items(simple_table_config, engine_config):
    return TableWidget("items", simple_table_config, engine_config)


def _column(table, header):
    return [row.values[header] for row in table.rows]


class TestRows:
    """Tests for adding, deleting and editing rows."""

    def test_defaults(self, inventory):
        """Test new cells use the first option or blank."""
        row = inventory.add_row()
        assert row.values == {"Name": "", "Qty": "", "Due": "", "Unit": "pcs"}
        assert not row.is_tagged

    def test_delete_tagged_row(self, items):
        """Test that deleting a persisted row remembers its identity."""
        items.add_row(identity=42, values={"Name": "bolt"})
        fresh = items.add_row(values={"Name": "nut"})

        items.delete_row(items.rows[0])
        items.delete_row(fresh.key)

        assert items.rows == []
        assert items.deleted_ids == ["42"]
        assert items.extract() == {"rows": [], "deletedIds": ["42"]}
        assert items.export_rows() == "Name,Qty"

    def test_deleted_row_not_exported(self, items):
        """Test that a deleted persisted row leaves the CSV export."""
        items.add_row(identity=42, values={"Name": "bolt", "Qty": "1"})
        items.add_row(values={"Name": "nut", "Qty": "2"})
        items.delete_row(items.rows[0])
        assert items.deleted_ids == ["42"]
        assert items.export_rows() == "Name,Qty\nnut,2"

    def test_update_cell(self, items):
        """Test editing a cell by row key."""
        row = items.add_row()
        items.update_cell(row.key, "Qty", "7")
        assert items.get_row(row.key).values["Qty"] == "7"

    def test_unknown_column(self, items):
        """Test that unknown columns are rejected."""
        with pytest.raises(UnknownColumnError):
            items.add_row(values={"Color": "red"})
        with pytest.raises(KeyError):
            items.sort("Color")

    def test_unknown_row(self, items):
        """Test that deleting a missing row raises KeyError."""
        with pytest.raises(KeyError):
            items.delete_row(99)

    def test_starts_with_blank_row(self, simple_table_config):
        """Test the optional initial blank row."""
        table = TableWidget(
            "items", simple_table_config, FormEngineConfig(table_starts_with_blank_row=True)
        )
        assert len(table.rows) == 1


class TestSort:
    """Tests for sorting."""

    def test_text_case_insensitive(self, inventory):
        """Test text columns sort without regard to case."""
        for name in ["banana", "Apple", "cherry"]:
            inventory.add_row(values={"Name": name})
        inventory.sort("Name")
        assert _column(inventory, "Name") == ["Apple", "banana", "cherry"]

    def test_number_toggle(self, inventory):
        """Test numeric order, blank as zero and unparsable cells last."""
        for qty in ["10", "9", "", "abc"]:
            inventory.add_row(values={"Qty": qty})

        state = inventory.sort("Qty")
        assert state.direction == "asc"
        assert _column(inventory, "Qty") == ["", "9", "10", "abc"]

        state = inventory.sort("Qty")
        assert state.direction == "desc"
        assert _column(inventory, "Qty") == ["10", "9", "", "abc"]

    def test_new_column_starts_ascending(self, inventory):
        """Test switching columns resets the direction."""
        inventory.add_row(values={"Name": "a", "Qty": "1"})
        inventory.sort("Qty")
        inventory.sort("Qty")
        assert inventory.sort("Name").direction == "asc"

    def test_dates(self, inventory):
        """Test date columns compare as instants."""
        for due in ["2024-03-01", "not a date", "2023-12-31T23:00:00Z", "2024-01-15"]:
            inventory.add_row(values={"Due": due})
        inventory.sort("Due")
        assert _column(inventory, "Due") == [
            "2023-12-31T23:00:00Z",
            "2024-01-15",
            "2024-03-01",
            "not a date",
        ]


class TestFilter:
    """Tests for filtering."""

    def test_text_substring(self, inventory):
        """Test case-insensitive substring filters."""
        for name in ["banana", "Apple", "cherry"]:
            inventory.add_row(values={"Name": name})
        inventory.filter("Name", "AN")
        assert [row.values["Name"] for row in inventory.visible_rows()] == ["banana"]
        assert len(inventory.rows) == 3

        inventory.clear_filter("Name")
        assert len(inventory.visible_rows()) == 3

    def test_number_range(self, inventory):
        """Test open-ended numeric ranges."""
        for qty in ["10", "3", "7", "abc"]:
            inventory.add_row(values={"Qty": qty})
        inventory.filter("Qty", [5, None])
        assert [row.values["Qty"] for row in inventory.visible_rows()] == ["10", "7"]

    def test_date_range(self, inventory):
        """Test inclusive date ranges."""
        for due in ["2023-12-31", "2024-01-01", "2024-01-31", "2024-02-01"]:
            inventory.add_row(values={"Due": due})
        inventory.filter("Due", ["2024-01-01", "2024-01-31"])
        assert [row.values["Due"] for row in inventory.visible_rows()] == [
            "2024-01-01",
            "2024-01-31",
        ]

    def test_filters_combine(self, inventory):
        """Test that every active filter must pass."""
        inventory.add_row(values={"Name": "bolt", "Qty": "10"})
        inventory.add_row(values={"Name": "bolt", "Qty": "1"})
        inventory.add_row(values={"Name": "nut", "Qty": "10"})
        inventory.filter("Name", "bolt")
        inventory.filter("Qty", ["5", ""])
        assert len(inventory.visible_rows()) == 1

        inventory.clear_filters()
        assert len(inventory.visible_rows()) == 3

    def test_bad_range(self, inventory):
        """Test that a range filter needs a pair."""
        with pytest.raises(ValueError):
            inventory.filter("Qty", "5")

    def test_filtered_rows_are_extracted(self, inventory):
        """Test that hidden rows are still submitted."""
        inventory.add_row(values={"Name": "bolt"})
        inventory.add_row(values={"Name": "nut"})
        inventory.filter("Name", "bolt")
        assert len(inventory.extract()["rows"]) == 2


class TestPagination:
    """Tests for pagination."""

    def test_page_count(self, inventory):
        """Test twelve rows at five per page."""
        for i in range(12):
            inventory.add_row(values={"Name": f"row-{i}"})
        assert inventory.total_pages == 3
        inventory.go_to_page(3)
        assert [row.values["Name"] for row in inventory.page_rows()] == ["row-10", "row-11"]

    def test_clamping(self, inventory):
        """Test out-of-range pages clamp, also after filtering."""
        for i in range(12):
            inventory.add_row(values={"Name": f"keep-{i}" if i < 3 else f"drop-{i}"})

        assert inventory.go_to_page(5) == 3
        assert inventory.go_to_page(0) == 1

        inventory.go_to_page(3)
        inventory.filter("Name", "keep")
        assert inventory.pagination.current_page == 1
        assert len(inventory.page_rows()) == 3

    def test_rows_per_page(self, inventory):
        """Test changing the page size."""
        for i in range(12):
            inventory.add_row()
        inventory.go_to_page(3)
        inventory.set_rows_per_page(10)
        assert inventory.pagination.current_page == 1
        assert inventory.total_pages == 2
        with pytest.raises(ValueError):
            inventory.set_rows_per_page(7)

    def test_not_paginated(self, items):
        """Test paging a table without pagination."""
        for i in range(12):
            items.add_row()
        assert items.total_pages == 1
        assert len(items.page_rows()) == 12
        with pytest.raises(FormEngineError):
            items.go_to_page(2)


class TestCsv:
    """Tests for CSV export and import."""

    def test_export(self, items):
        """Test header line plus visible rows."""
        items.add_row(values={"Name": "bolt", "Qty": "3"})
        items.add_row(values={"Name": "nut", "Qty": "5"})
        items.filter("Name", "bolt")
        assert items.export_rows() == "Name,Qty\nbolt,3"
        assert items.export_filename == "items_export.csv"

    def test_fixed_point(self, items):
        """Test that importing an export reproduces it."""
        items.add_row(values={"Name": "bolt", "Qty": "3"})
        items.add_row(values={"Name": "nut", "Qty": "5"})
        text = items.export_rows()

        result = items.import_rows(text)

        assert result.imported == 2
        assert items.export_rows() == text

    def test_import_maps_by_header(self, items):
        """Test column order, extra columns and blank lines."""
        result = items.import_rows("Qty,Extra,Name\n3,x,bolt\n\n5,y,nut\n")
        assert result.imported == 2
        assert result.ignored_headers == ["Extra"]
        assert _column(items, "Name") == ["bolt", "nut"]
        assert _column(items, "Qty") == ["3", "5"]

    def test_import_replaces_tagged_rows(self, items):
        """Test that replaced persisted rows are marked for deletion."""
        items.add_row(identity="42", values={"Name": "old"})
        items.import_rows("Name,Qty\nnew,1")
        assert items.deleted_ids == ["42"]
        assert all(not row.is_tagged for row in items.rows)

    def test_schema_mismatch(self, items):
        """Test that missing headers leave the table unchanged."""
        items.add_row(identity="1", values={"Name": "bolt", "Qty": "3"})
        before = items.extract()

        with pytest.raises(SchemaMismatch) as exc_info:
            items.import_rows("Name\nnut")

        assert exc_info.value.missing == ["Qty"]
        assert items.extract() == before


class TestValueModel:
    """Tests for extract and load."""

    def test_extract_tags_identity(self, items):
        """Test persisted rows carry their identity."""
        items.add_row(identity=7, values={"Name": "bolt", "Qty": "3"})
        items.add_row(values={"Name": "nut", "Qty": "5"})
        assert items.extract()["rows"] == [
            {"Id": "7", "Name": "bolt", "Qty": "3"},
            {"Name": "nut", "Qty": "5"},
        ]

    def test_load_list(self, items):
        """Test loading stored row objects with any identity key spelling."""
        items.load([
            {"ID": 1, "Name": "bolt", "Qty": "3", "Requests": 9},
            {"id": 2, "Name": "nut"},
            {"Name": "washer"},
        ])
        assert [row.identity for row in items.rows] == ["1", "2", None]
        assert items.rows[1].values == {"Name": "nut", "Qty": ""}

    def test_load_extracted(self, items):
        """Test loading the extracted mapping merges deletions."""
        items.add_row(identity="5")
        items.delete_row(items.rows[0])
        items.load({"rows": [{"Id": "6", "Name": "bolt"}], "deletedIds": ["4"]})
        assert items.deleted_ids == ["5", "4"]
        assert items.rows[0].identity == "6"

    def test_view_state(self, inventory):
        """Test the JSON view of rows and view settings."""
        inventory.add_row(values={"Name": "bolt"})
        inventory.sort("Name")
        inventory.filter("Name", "bo")
        view = inventory.view_state()
        assert view["columns"] == ["Name", "Qty", "Due", "Unit"]
        assert view["sort"] == {"column": "Name", "direction": "asc"}
        assert view["filters"] == {"Name": "bo"}
        assert view["pagination"] == {"rowsPerPage": 5, "currentPage": 1, "totalPages": 1}
        assert view["visibleKeys"] == view["pageKeys"] == [inventory.rows[0].key]
