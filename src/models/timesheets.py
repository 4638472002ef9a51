"""
Data models for timesheet workbooks and aggregation results.

Rows and results are plain dicts typed with TypedDict, matching how the
services pass them around. The workbook abstraction is a small set of
dataclasses so both openpyxl and numbers-parser files can feed the same core.
"""

from dataclasses import dataclass, field
from typing import Any, TypedDict


@dataclass
class Cell:
    """A single spreadsheet cell: raw value plus its displayed text, if known."""

    value: Any = None
    text: str | None = None

    def display(self) -> str:
        """Displayed text, falling back to the raw value, then to ''."""
        if self.text:
            return self.text
        if self.value is None or self.value == "":
            return ""
        if isinstance(self.value, float) and self.value.is_integer():
            return str(int(self.value))
        return str(self.value)

    def is_empty(self) -> bool:
        return self.display().strip() == ""


@dataclass
class Sheet:
    """
    One named grid of cells, cropped to its used range.

    Row 0 is the header row; data rows follow.
    """

    name: str
    rows: list[list[Cell | None]] = field(default_factory=list)

    @property
    def num_rows(self) -> int:
        return len(self.rows)

    @property
    def num_cols(self) -> int:
        return max((len(row) for row in self.rows), default=0)

    def cell(self, row: int, col: int) -> Cell | None:
        """Look up a cell by (row, column) within the used range."""
        if row < 0 or row >= len(self.rows):
            return None
        cells = self.rows[row]
        if col < 0 or col >= len(cells):
            return None
        return cells[col]

    def header(self) -> list[Cell | None]:
        return self.rows[0] if self.rows else []


@dataclass
class Workbook:
    """Ordered collection of named sheets."""

    sheets: dict[str, Sheet] = field(default_factory=dict)

    @property
    def sheet_names(self) -> list[str]:
        return list(self.sheets.keys())

    def get(self, name: str) -> Sheet | None:
        return self.sheets.get(name)


@dataclass(frozen=True)
class DateRange:
    """Billing period bounds; both are date column labels (or '' when none)."""

    start: str
    end: str


class FeatureRow(TypedDict):
    """Total billable hours for one work-item label over the active range."""
    feature: str
    hours: float


class LowHoursWarning(TypedDict):
    """A date whose total falls strictly between 0 and the threshold."""
    date: str
    hours: float


@dataclass
class AggregationResult:
    """Output of the timesheet pipeline for one billing period."""

    date_columns: list[str]
    active_columns: list[str]
    features: list[FeatureRow]
    daily_totals: dict[str, float]
    warnings: list[LowHoursWarning]
    summary: str

    @property
    def start(self) -> str:
        return self.active_columns[0] if self.active_columns else ""

    @property
    def end(self) -> str:
        return self.active_columns[-1] if self.active_columns else ""

    @property
    def total_hours(self) -> float:
        return sum(row["hours"] for row in self.features)
