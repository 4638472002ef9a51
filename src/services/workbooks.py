"""
Workbook loading for timesheet uploads.

Decodes Excel (.xlsx/.xlsm, via openpyxl) and Apple Numbers (.numbers, via
numbers-parser) files into the Workbook/Sheet/Cell models used by the
aggregation service. Each sheet is cropped to its used range so the header
row is always row 0.
"""

import re
import tempfile
from datetime import date, datetime
from io import BytesIO
from pathlib import Path

from numbers_parser import Document
from openpyxl import load_workbook

from core.config import SUPPORTED_EXTENSIONS
from core.errors import WorkbookParseError
from models.timesheets import Cell, Sheet, Workbook

# Month/day number formats such as "m/d", "mm/dd;@" or "[$-409]m/d"
MONTH_DAY_FORMAT_RE = re.compile(r"^(m{1,2})/(d{1,2})$")


# =============================================================================
# HELPERS
# =============================================================================


def crop_to_used_range(name: str, grid: list[list[Cell | None]]) -> Sheet:
    """Crop a grid to the minimum rectangle holding non-empty cells."""
    filled = [
        (row_idx, col_idx)
        for row_idx, row in enumerate(grid)
        for col_idx, cell in enumerate(row)
        if cell is not None and not cell.is_empty()
    ]
    if not filled:
        return Sheet(name=name, rows=[])

    first_row = min(r for r, _ in filled)
    last_row = max(r for r, _ in filled)
    first_col = min(c for _, c in filled)
    last_col = max(c for _, c in filled)

    rows = []
    for row in grid[first_row : last_row + 1]:
        cropped = list(row[first_col : last_col + 1])
        cropped.extend([None] * (last_col - first_col + 1 - len(cropped)))
        rows.append(cropped)

    return Sheet(name=name, rows=rows)


def format_excel_date(value: date, number_format: str) -> str:
    """Render a date cell the way Excel displays month/day formats."""
    cleaned = re.sub(r"\[[^\]]*\]", "", number_format or "").lower()
    cleaned = cleaned.split(";")[0].replace("\\", "").replace('"', "").strip()

    match = MONTH_DAY_FORMAT_RE.match(cleaned)
    if match:
        month = f"{value.month:02d}" if len(match.group(1)) == 2 else str(value.month)
        day = f"{value.day:02d}" if len(match.group(2)) == 2 else str(value.day)
        return f"{month}/{day}"

    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def excel_display_text(value, number_format: str) -> str | None:
    """Approximate the displayed text of an openpyxl cell."""
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return format_excel_date(value, number_format)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def check_extension(filename: str) -> str:
    """Return the lowercase extension, or raise if it isn't supported."""
    suffix = Path(filename).suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise WorkbookParseError(
            f"Unsupported file type '{suffix or filename}' "
            f"(supported: {', '.join(sorted(SUPPORTED_EXTENSIONS))})"
        )
    return suffix


# =============================================================================
# EXCEL
# =============================================================================


def read_excel_workbook(source) -> Workbook:
    """Read an .xlsx file (path or file-like object) with openpyxl."""
    try:
        wb = load_workbook(source, data_only=True)
    except Exception as e:
        raise WorkbookParseError(f"Could not read Excel workbook: {e}") from e

    sheets = {}
    for ws in wb.worksheets:
        grid = [
            [Cell(value=c.value, text=excel_display_text(c.value, c.number_format)) for c in row]
            for row in ws.iter_rows()
        ]
        sheets[ws.title] = crop_to_used_range(ws.title, grid)

    wb.close()
    return Workbook(sheets=sheets)


# =============================================================================
# NUMBERS
# =============================================================================


def read_numbers_workbook(path: Path) -> Workbook:
    """
    Read a .numbers file with numbers-parser.

    Each Numbers sheet becomes one Sheet built from its first table.
    """
    try:
        doc = Document(str(path))
    except Exception as e:
        raise WorkbookParseError(f"Could not read Numbers document: {e}") from e

    sheets = {}
    for numbers_sheet in doc.sheets:
        if not numbers_sheet.tables:
            continue
        table = numbers_sheet.tables[0]
        grid = [
            [Cell(value=c.value, text=c.formatted_value or None) for c in row]
            for row in table.rows()
        ]
        sheets[numbers_sheet.name] = crop_to_used_range(numbers_sheet.name, grid)

    return Workbook(sheets=sheets)


# =============================================================================
# MAIN ENTRY POINTS
# =============================================================================


def load_workbook_from_path(path: Path) -> Workbook:
    """
    Load a timesheet workbook from disk.

    Raises:
        FileNotFoundError: Input file doesn't exist
        WorkbookParseError: Unsupported type or undecodable content
    """
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    suffix = check_extension(path.name)
    if suffix == ".numbers":
        return read_numbers_workbook(path)
    return read_excel_workbook(str(path))


def load_workbook_from_bytes(content: bytes, filename: str) -> Workbook:
    """
    Load a timesheet workbook from uploaded bytes.

    numbers-parser needs a real file, so .numbers content goes through a
    temporary file first.
    """
    suffix = check_extension(filename)
    if suffix != ".numbers":
        return read_excel_workbook(BytesIO(content))

    tmp = tempfile.NamedTemporaryFile(suffix=".numbers", delete=False)
    tmp_path = Path(tmp.name)
    try:
        tmp.write(content)
        tmp.flush()
        tmp.close()
        return read_numbers_workbook(tmp_path)
    finally:
        tmp_path.unlink(missing_ok=True)
