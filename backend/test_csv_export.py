"""Tests for CSV export."""

import csv
import io

from conftest import FakeSupabase
from dbtools.csv_export import SUMMARY_FILE, export_tables, no_data_placeholder, rows_to_csv


def parse(text):
    return list(csv.reader(io.StringIO(text)))


def test_escaping_round_trips_through_csv_reader():
    rows = [
        {"id": "1", "note": 'said "hello", then left', "body": "line one\nline two"},
        {"id": "2", "note": "plain", "body": ""},
    ]
    parsed = parse(rows_to_csv(rows))
    assert parsed[0] == ["id", "note", "body"]
    assert parsed[1] == ["1", 'said "hello", then left', "line one\nline two"]
    assert parsed[2] == ["2", "plain", ""]


def test_cell_rendering():
    rows = [{"flag": True, "off": False, "missing": None, "meta": {"a": [1, 2]}, "n": 3.5}]
    parsed = parse(rows_to_csv(rows))
    assert parsed[1] == ["true", "false", "", '{"a": [1, 2]}', "3.5"]


def test_columns_are_union_of_row_keys():
    rows = [{"id": "1", "a": "x"}, {"id": "2", "b": "y"}]
    parsed = parse(rows_to_csv(rows))
    assert parsed[0] == ["id", "a", "b"]
    assert parsed[2] == ["2", "", "y"]


def test_zero_rows_with_known_columns_is_header_only():
    assert parse(rows_to_csv([], columns=["id", "name"])) == [["id", "name"]]


def test_zero_rows_without_columns_is_placeholder():
    assert rows_to_csv([], table="tools") == "No data available for table: tools\n"


def test_export_tables(tmp_path):
    db = FakeSupabase()
    db.create_table("assets", ["id", "serial_number"], [
        {"id": "a1", "serial_number": "PUMP, main"},
    ])
    db.create_table("tools", ["id", "name"])
    out_dir = tmp_path / "csv"

    counts = export_tables(db, ["assets", "tools", "parts"], out_dir, out=io.StringIO())

    assert counts == {"assets": 1, "tools": 0}
    with open(out_dir / "assets.csv", newline="", encoding="utf-8") as f:
        assert list(csv.reader(f)) == [["id", "serial_number"], ["a1", "PUMP, main"]]
    assert (out_dir / "tools.csv").read_text(encoding="utf-8") == no_data_placeholder("tools")
    assert not (out_dir / "parts.csv").exists()

    summary = (out_dir / SUMMARY_FILE).read_text(encoding="utf-8")
    assert "assets.csv: 1 records" in summary
    assert "tools.csv: 0 records" in summary
    assert "parts.csv: skipped" in summary
