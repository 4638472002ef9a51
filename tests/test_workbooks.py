"""
Tests for decoding Excel and Numbers timesheets into the workbook model.
"""

from datetime import date, datetime
from types import SimpleNamespace

import pytest
from openpyxl import Workbook as ExcelWorkbook

import services.workbooks as workbooks
from core.errors import WorkbookParseError
from models.timesheets import Cell
from services.timesheets import discover_date_columns, process_timesheet
from services.workbooks import (
    crop_to_used_range,
    excel_display_text,
    format_excel_date,
    load_workbook_from_bytes,
    load_workbook_from_path,
)


@pytest.fixture
def excel_dated_headers(tmp_path):
    """Timesheet whose date headers are real Excel dates formatted as m/d."""
    wb = ExcelWorkbook()
    ws = wb.active
    ws.title = "Week 1"

    # Table starts at B3 to exercise used-range cropping
    ws.cell(row=3, column=2, value="Feature")
    for col, day in enumerate([3, 4], start=3):
        cell = ws.cell(row=3, column=col, value=datetime(2025, 3, day))
        cell.number_format = "m/d"
    ws.cell(row=3, column=5, value="3/5")

    ws.cell(row=4, column=2, value="Design")
    ws.cell(row=4, column=3, value=4.0)
    ws.cell(row=4, column=4, value=3.5)
    ws.cell(row=4, column=5, value="2")

    ws.cell(row=5, column=2, value="QA")
    ws.cell(row=5, column=5, value=6)

    wb.create_sheet(title="Empty")

    path = tmp_path / "timesheet.xlsx"
    wb.save(path)
    return path


# =============================================================================
# EXCEL
# =============================================================================


def test_load_excel_crops_used_range(excel_dated_headers):
    workbook = load_workbook_from_path(excel_dated_headers)

    assert workbook.sheet_names == ["Week 1", "Empty"]
    sheet = workbook.sheets["Week 1"]
    assert (sheet.num_rows, sheet.num_cols) == (3, 4)
    assert sheet.cell(0, 0).display() == "Feature"
    assert workbook.sheets["Empty"].rows == []


def test_load_excel_renders_month_day_headers(excel_dated_headers):
    workbook = load_workbook_from_path(excel_dated_headers)
    assert discover_date_columns(workbook, ["Week 1"]) == ["3/3", "3/4", "3/5"]


def test_load_excel_end_to_end(excel_dated_headers):
    workbook = load_workbook_from_path(excel_dated_headers)
    result = process_timesheet(workbook, ["Week 1"], "3/3", "3/5", silent=True)

    assert result.features == [
        {"feature": "Design", "hours": 9.5},
        {"feature": "QA", "hours": 6.0},
    ]
    assert result.daily_totals == {"3/3": 4.0, "3/4": 3.5, "3/5": 8.0}


def test_load_excel_from_bytes(make_xlsx):
    content = make_xlsx({"S": [["Feature", "1/1"], ["Design", 8]]})
    workbook = load_workbook_from_bytes(content, "upload.XLSX")
    assert workbook.sheets["S"].cell(1, 1).value == 8


def test_load_rejects_unsupported_extension(tmp_path):
    path = tmp_path / "timesheet.csv"
    path.write_text("Feature,1/1\n")
    with pytest.raises(WorkbookParseError):
        load_workbook_from_path(path)


def test_load_rejects_corrupt_excel():
    with pytest.raises(WorkbookParseError):
        load_workbook_from_bytes(b"not a zip file", "timesheet.xlsx")


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_workbook_from_path(tmp_path / "missing.xlsx")


@pytest.mark.parametrize(
    "number_format,expected",
    [
        ("m/d", "3/4"),
        ("mm/dd", "03/04"),
        ("m/dd", "3/04"),
        ("[$-409]m/d;@", "3/4"),
        ("yyyy-mm-dd", "2025-03-04"),
    ],
)
def test_format_excel_date(number_format, expected):
    assert format_excel_date(datetime(2025, 3, 4, 9, 30), number_format) == expected


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, None),
        (8.0, "8"),
        (7.25, "7.25"),
        ("Design", "Design"),
        (date(2025, 1, 2), "2025-01-02"),
    ],
)
def test_excel_display_text(value, expected):
    assert excel_display_text(value, "General") == expected


def test_crop_to_used_range_pads_short_rows():
    grid = [
        [None, None, None],
        [None, Cell("Feature"), Cell("1/1")],
        [None, Cell("A")],
    ]
    sheet = crop_to_used_range("S", grid)
    assert sheet.num_rows == 2
    assert sheet.rows[1] == [Cell("A"), None]


# =============================================================================
# NUMBERS
# =============================================================================


def numbers_cell(value, formatted=""):
    return SimpleNamespace(value=value, formatted_value=formatted)


def test_load_numbers_uses_formatted_values(tmp_path, monkeypatch):
    rows = [
        [numbers_cell(None), numbers_cell(None), numbers_cell(None)],
        [numbers_cell("Feature", "Feature"), numbers_cell(datetime(2025, 3, 14), "3/14"), numbers_cell(None)],
        [numbers_cell("Design", "Design"), numbers_cell(6.0, "6"), numbers_cell(None)],
    ]
    table = SimpleNamespace(rows=lambda: rows)
    doc = SimpleNamespace(
        sheets=[
            SimpleNamespace(name="Sheet 1", tables=[table]),
            SimpleNamespace(name="Chart only", tables=[]),
        ]
    )
    monkeypatch.setattr(workbooks, "Document", lambda path: doc)

    path = tmp_path / "timesheet.numbers"
    path.write_bytes(b"numbers")
    workbook = load_workbook_from_path(path)

    assert workbook.sheet_names == ["Sheet 1"]
    assert discover_date_columns(workbook, ["Sheet 1"]) == ["3/14"]
    result = process_timesheet(workbook, silent=True)
    assert result.features == [{"feature": "Design", "hours": 6.0}]


def test_load_numbers_wraps_decoder_errors(monkeypatch):
    def broken_document(path):
        raise RuntimeError("bad archive")

    monkeypatch.setattr(workbooks, "Document", broken_document)
    with pytest.raises(WorkbookParseError, match="bad archive"):
        load_workbook_from_bytes(b"numbers", "timesheet.numbers")


# =============================================================================
# SAMPLE GENERATOR
# =============================================================================


def test_generated_sample_timesheet_aggregates(tmp_path):
    from fixtures.generate_timesheet import FEATURES, generate_timesheet, get_workdays

    path = generate_timesheet(2025, 11, 2, tmp_path / "sample.xlsx")
    workbook = load_workbook_from_path(path)

    assert len(workbook.sheet_names) == 2
    date_columns = discover_date_columns(workbook, workbook.sheet_names)
    assert date_columns == [f"11/{d.day}" for d in get_workdays(2025, 11)]

    result = process_timesheet(workbook, workbook.sheet_names, silent=True)
    assert {row["feature"] for row in result.features} <= set(FEATURES)
    assert result.total_hours == sum(result.daily_totals.values())
