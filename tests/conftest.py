"""
Pytest configuration and shared fixtures.
"""

import sys
from io import BytesIO
from pathlib import Path

import pytest
from openpyxl import Workbook as ExcelWorkbook

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from models.timesheets import Cell, Sheet, Workbook  # noqa: E402


def build_sheet(name: str, rows: list[list]) -> Sheet:
    """Build a Sheet from raw values (None means an empty cell)."""
    return Sheet(
        name=name,
        rows=[[Cell(value=v) if v is not None else None for v in row] for row in rows],
    )


@pytest.fixture
def make_workbook():
    """Factory: {sheet name: rows} -> in-memory Workbook."""

    def _make(sheets: dict[str, list[list]]) -> Workbook:
        return Workbook(sheets={name: build_sheet(name, rows) for name, rows in sheets.items()})

    return _make


@pytest.fixture
def make_xlsx():
    """Factory: {sheet name: rows} -> .xlsx bytes written with openpyxl."""

    def _make(sheets: dict[str, list[list]]) -> bytes:
        wb = ExcelWorkbook()
        wb.remove(wb.active)
        for name, rows in sheets.items():
            ws = wb.create_sheet(title=name)
            for row in rows:
                ws.append(row)
        buffer = BytesIO()
        wb.save(buffer)
        return buffer.getvalue()

    return _make


@pytest.fixture
def two_sheet_timesheet(make_workbook):
    """Two sheets sharing headers; 'Design' logs 4+5 on one and 3+0 on the other."""
    return make_workbook(
        {
            "Alice": [
                ["Feature", "1/1", "1/2"],
                ["Design", 4, 5],
            ],
            "Bob": [
                ["Feature", "1/1", "1/2"],
                ["Design", 3, 0],
            ],
        }
    )


@pytest.fixture
def march_timesheet(make_workbook):
    """A single sheet with four features over three days."""
    return make_workbook(
        {
            "March": [
                ["Feature", "Notes", "3/1", "3/2", "3/3"],
                ["Design", "wireframes", 4, 4, 2],
                ["Backend", "", 3, 4, 3],
                ["QA", None, 1, None, 2],
                ["Docs", "", None, None, 1],
            ],
        }
    )
