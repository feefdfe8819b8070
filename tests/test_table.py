"""Tests for the in-memory and JSON-file workbooks."""

from __future__ import annotations

import json
from datetime import date, datetime

import pytest

from sheet_relay.core.table import JsonFileWorkbook, TableAccessor, Workbook
from sheet_relay.errors import ConfigurationError, ValidationError


@pytest.fixture
def book():
    return Workbook(
        {
            "Tasks": [
                ["Name", "Due", "Score"],
                ["b", date(2024, 3, 1), 5],
                ["a", "", 10],
                ["c", date(2024, 1, 1)],
            ]
        }
    )


class TestWorkbook:
    """Tests for the in-memory Workbook."""

    def test_satisfies_protocol(self, book):
        assert isinstance(book, TableAccessor)

    def test_unknown_table_is_configuration_error(self, book):
        with pytest.raises(ConfigurationError):
            book.width("Missing")
        assert not book.has_table("Missing")

    def test_width_and_last_row(self, book):
        assert book.width("Tasks") == 3
        assert book.last_row("Tasks") == 4

    def test_empty_table_has_zero_width(self):
        book = Workbook({"Empty": []})
        assert book.width("Empty") == 0
        assert book.last_row("Empty") == 0

    def test_read_range_pads_short_rows(self, book):
        block = book.read_range("Tasks", 4, 1, 2, 3)
        assert block == [["c", date(2024, 1, 1), ""], ["", "", ""]]

    def test_read_range_rejects_bad_origin(self, book):
        with pytest.raises(ValidationError):
            book.read_range("Tasks", 0, 1, 1, 1)

    def test_append_returns_position(self, book):
        assert book.append_row("Tasks", ["d", None, 1]) == 5
        assert book.rows("Tasks")[-1] == ["d", "", 1]

    def test_write_cell_grows_table(self, book):
        book.write_cell("Tasks", 6, 5, "x")
        assert book.last_row("Tasks") == 6
        assert book.read_range("Tasks", 6, 5, 1, 1) == [["x"]]

    def test_add_table_twice_fails(self, book):
        book.add_table("New", ["A"])
        assert book.rows("New") == [["A"]]
        with pytest.raises(ValidationError):
            book.add_table("New")

    def test_sort_region_keeps_header_and_puts_blanks_last(self, book):
        book.sort_region("Tasks", 2, 2)
        names = [r[0] for r in book.rows("Tasks")]
        assert names == ["Name", "c", "b", "a"]

    def test_sort_region_descending_numbers(self, book):
        book.sort_region("Tasks", 2, 3, ascending=False)
        names = [r[0] for r in book.rows("Tasks")]
        assert names == ["Name", "a", "b", "c"]

    def test_rows_returns_copy(self, book):
        book.rows("Tasks")[0][0] = "changed"
        assert book.rows("Tasks")[0][0] == "Name"

    def test_table_with_rows_has_one_header_row(self, book):
        assert book.header_rows("Tasks") == 1

    def test_table_created_empty_is_headerless(self):
        book = Workbook({"Dest": []})
        book.add_table("Later")
        book.append_row("Dest", ["Acme"])

        assert book.header_rows("Dest") == 0
        assert book.header_rows("Later") == 0

    def test_add_table_with_header(self):
        book = Workbook()
        book.add_table("T", ["Name"])
        assert book.header_rows("T") == 1

    def test_header_rows_override(self):
        book = Workbook({"T": [["a"], ["b"]], "U": []}, header_rows={"T": 0, "U": 2})
        assert book.header_rows("T") == 0
        assert book.header_rows("U") == 2

    def test_negative_header_rows_rejected(self):
        with pytest.raises(ValidationError):
            Workbook({"T": []}, header_rows={"T": -1})

    def test_header_rows_of_unknown_table(self, book):
        with pytest.raises(ConfigurationError):
            book.header_rows("Nope")


class TestJsonFileWorkbook:
    """Tests for the JSON-file workbook."""

    def test_missing_file_is_empty(self, tmp_path):
        book = JsonFileWorkbook(tmp_path / "wb.json")
        assert not book.has_table("Upcoming")
        assert not (tmp_path / "wb.json").exists()

    def test_writes_are_persisted(self, tmp_path):
        path = tmp_path / "wb.json"
        book = JsonFileWorkbook(path)
        book.add_table("Upcoming", ["Project"])
        book.append_row("Upcoming", ["Acme"])

        data = json.loads(path.read_text())
        assert data == {
            "tables": {"Upcoming": [["Project"], ["Acme"]]},
            "header_rows": {"Upcoming": 1},
        }

    def test_headerless_table_survives_reload(self, tmp_path):
        path = tmp_path / "wb.json"
        book = JsonFileWorkbook(path)
        book.add_table("Dest")
        book.append_row("Dest", ["Acme"])

        reloaded = JsonFileWorkbook(path)
        assert reloaded.header_rows("Dest") == 0

    def test_header_rows_default_when_absent_from_file(self, tmp_path):
        path = tmp_path / "wb.json"
        path.write_text(json.dumps({"tables": {"A": [["H"], ["x"]], "B": []}}))

        book = JsonFileWorkbook(path)
        assert book.header_rows("A") == 1
        assert book.header_rows("B") == 0

    def test_dates_round_trip(self, tmp_path):
        path = tmp_path / "wb.json"
        book = JsonFileWorkbook(path)
        book.add_table("T")
        book.append_row("T", [date(2024, 5, 10), datetime(2024, 5, 10, 9, 30)])

        reloaded = JsonFileWorkbook(path)
        assert reloaded.rows("T") == [
            [date(2024, 5, 10), datetime(2024, 5, 10, 9, 30)]
        ]
        assert isinstance(reloaded.rows("T")[0][0], date)
        assert not isinstance(reloaded.rows("T")[0][0], datetime)

    def test_sees_writes_from_another_instance(self, tmp_path):
        path = tmp_path / "wb.json"
        first = JsonFileWorkbook(path)
        first.add_table("T", ["H"])
        second = JsonFileWorkbook(path)
        assert second.last_row("T") == 1

        second.append_row("T", ["row"])
        assert first.last_row("T") == 2

    def test_no_temp_files_left_behind(self, tmp_path):
        book = JsonFileWorkbook(tmp_path / "wb.json")
        book.add_table("T", ["H"])
        assert [p.name for p in tmp_path.iterdir()] == ["wb.json"]
