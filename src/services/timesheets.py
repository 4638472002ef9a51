"""
Timesheet Aggregation Service

Turns a parsed timesheet workbook into billable totals. Date columns are
discovered from month/day headers ("3/14"), a billing period is selected from
them, and hours are summed per feature label and per day across the selected
sheets. Days with a low (but non-zero) total are flagged, and a one-line
summary of the top features is produced for the invoice.
"""

import math
import re

from core.config import (
    DATE_COLUMN_PATTERN,
    FEATURE_COLUMN,
    LOW_HOURS_THRESHOLD,
    SUMMARY_TOP_N,
    UNCATEGORIZED_LABEL,
)
from core.errors import InvalidRangeError
from models.timesheets import (
    AggregationResult,
    DateRange,
    FeatureRow,
    LowHoursWarning,
    Sheet,
    Workbook,
)

DATE_COLUMN_RE = re.compile(DATE_COLUMN_PATTERN)

# Leading numeric prefix, so "7.5h" reads as 7.5 and "n/a" reads as nothing
NUMBER_PREFIX_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")

# Whole-string numbers, used when deciding whether a text cell is numeric
NUMBER_FULL_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")


# =============================================================================
# CELL COERCION
# =============================================================================


def parse_optional_number(value) -> float | None:
    """
    Read a cell value as hours.

    Returns None (never raises) when the value has no numeric reading.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return None if math.isnan(number) else number

    match = NUMBER_PREFIX_RE.match(str(value))
    if not match:
        return None
    return float(match.group(0))


def coerce_cell_value(value, text: str):
    """Numbers stay numbers, numeric-looking text becomes a number, the rest stays text."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    if NUMBER_FULL_RE.match(text):
        return float(text)
    return text


# =============================================================================
# DATE COLUMN DISCOVERY
# =============================================================================


def select_sheets(workbook: Workbook, sheet_names: list[str] | None) -> list[str]:
    """Selected sheet names with repeats removed, or the first sheet when none are given."""
    if not sheet_names:
        return workbook.sheet_names[:1]
    return list(dict.fromkeys(sheet_names))


def month_day_key(label: str) -> tuple[int, int]:
    """Sort key for 'M/D' labels."""
    month, day = label.split("/")
    return int(month), int(day)


def sort_month_day(labels: list[str]) -> list[str]:
    """Sort month/day labels chronologically (stable for equal month/day)."""
    return sorted(labels, key=month_day_key)


def discover_date_columns(workbook: Workbook, sheet_names: list[str]) -> list[str]:
    """
    Collect distinct month/day headers across the selected sheets.

    Only the header row of each sheet is scanned. Unknown sheet names are
    skipped. Labels are compared as exact strings, so "3/14" and "03/14" are
    both kept; ties sort in discovery order.
    """
    found: dict[str, None] = {}

    for name in sheet_names:
        sheet = workbook.get(name)
        if sheet is None:
            continue

        for cell in sheet.header():
            if cell is None:
                continue
            text = cell.display().strip()
            if DATE_COLUMN_RE.match(text):
                found.setdefault(text, None)

    return sort_month_day(list(found))


# =============================================================================
# RANGE SELECTION
# =============================================================================


def select_range(date_columns: list[str], start: str, end: str) -> list[str]:
    """
    Return the inclusive slice of date columns between start and end.

    Order-independent: (start, end) and (end, start) give the same slice.

    Raises:
        InvalidRangeError: If either bound is not a discovered date column
    """
    if start not in date_columns or end not in date_columns:
        missing = [label for label in (start, end) if label not in date_columns]
        raise InvalidRangeError(
            f"Invalid date range: {', '.join(repr(m) for m in missing)} not found in date columns",
            start=start,
            end=end,
        )

    start_idx = date_columns.index(start)
    end_idx = date_columns.index(end)
    lo, hi = min(start_idx, end_idx), max(start_idx, end_idx)
    return date_columns[lo : hi + 1]


def reconcile_range(date_columns: list[str], start: str | None, end: str | None) -> DateRange:
    """
    Keep the chosen bounds if they still exist, otherwise reset them.

    A missing start resets to the first column and a missing end to the last.
    With no columns at all, both become ''.
    """
    if not date_columns:
        return DateRange("", "")

    new_start = start if start in date_columns else date_columns[0]
    new_end = end if end in date_columns else date_columns[-1]
    return DateRange(new_start, new_end)


# =============================================================================
# AGGREGATION
# =============================================================================


def sheet_to_records(sheet: Sheet) -> list[dict]:
    """
    Convert data rows (header excluded) into {header: value} dicts.

    Empty cells are left out of the dict, blank rows are skipped, and columns
    without a header are ignored. Repeated headers get a '_1', '_2' suffix.
    Feature cells stay as displayed text; other cells are coerced to numbers
    where they read as one.
    """
    headers = []
    seen: dict[str, int] = {}
    for cell in sheet.header():
        key = cell.display().strip() if cell is not None else ""
        if key and key in seen:
            seen[key] += 1
            key = f"{key}_{seen[key]}"
        elif key:
            seen[key] = 0
        headers.append(key)

    records = []
    for row in sheet.rows[1:]:
        record = {}
        for col_idx, cell in enumerate(row):
            if col_idx >= len(headers) or not headers[col_idx]:
                continue
            if cell is None or cell.is_empty():
                continue
            if headers[col_idx].lower() == FEATURE_COLUMN:
                # Labels keep their displayed text ("0012" stays "0012")
                record[headers[col_idx]] = cell.display()
            else:
                record[headers[col_idx]] = coerce_cell_value(cell.value, cell.display())

        if record:
            records.append(record)

    return records


def get_row_label(record: dict) -> str:
    """Feature label for a row, or 'Uncategorized' when missing or blank."""
    feature_key = next((k for k in record if k.lower() == FEATURE_COLUMN), None)
    value = record.get(feature_key) if feature_key else None

    if value is None or not str(value).strip():
        return UNCATEGORIZED_LABEL
    return str(value)


def aggregate(
    workbook: Workbook,
    sheet_names: list[str],
    active_columns: list[str],
) -> tuple[list[FeatureRow], dict[str, float]]:
    """
    Sum hours per feature label and per date over the active columns.

    Daily totals include every numeric cell in range. A row only counts
    towards its feature when its own total is above zero.

    Returns:
        Tuple of (feature rows, daily totals keyed by date label)

    Raises:
        InvalidRangeError: If there are no active date columns
    """
    if not active_columns:
        raise InvalidRangeError("No date columns in selected range")

    daily_totals = {label: 0.0 for label in active_columns}
    feature_hours: dict[str, float] = {}

    for name in dict.fromkeys(sheet_names):
        sheet = workbook.get(name)
        if sheet is None:
            continue

        for record in sheet_to_records(sheet):
            label = get_row_label(record)
            total_hours = 0.0

            for date_label in active_columns:
                if date_label not in record:
                    continue
                hours = parse_optional_number(record[date_label])
                if hours is None:
                    continue
                total_hours += hours
                daily_totals[date_label] += hours

            if total_hours > 0:
                feature_hours[label] = feature_hours.get(label, 0.0) + total_hours

    features = [FeatureRow(feature=label, hours=hours) for label, hours in feature_hours.items()]
    return features, daily_totals


# =============================================================================
# ANOMALIES & SUMMARY
# =============================================================================


def detect_low_hour_days(
    daily_totals: dict[str, float],
    threshold: float = LOW_HOURS_THRESHOLD,
) -> list[LowHoursWarning]:
    """Flag dates with some hours logged but fewer than the threshold."""
    return [
        LowHoursWarning(date=date_label, hours=hours)
        for date_label, hours in daily_totals.items()
        if 0 < hours < threshold
    ]


def synthesize_summary(
    features: list[FeatureRow],
    start: str,
    end: str,
    top_n: int = SUMMARY_TOP_N,
) -> str:
    """
    Describe the billing period by its largest features.

    Example: "Services for period 3/1 to 3/31, focusing on Design, QA and others."
    """
    if not features:
        return ""

    top = sorted(features, key=lambda row: row["hours"], reverse=True)[:top_n]
    main_works = ", ".join(row["feature"] for row in top)
    others = " and others" if len(features) > top_n else ""
    return f"Services for period {start} to {end}, focusing on {main_works}{others}."


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================


def process_timesheet(
    workbook: Workbook,
    sheet_names: list[str] | None = None,
    start: str | None = None,
    end: str | None = None,
    threshold: float = LOW_HOURS_THRESHOLD,
    top_n: int = SUMMARY_TOP_N,
    silent: bool = False,
) -> AggregationResult:
    """
    Run discovery, range selection, aggregation, anomaly detection and summary.

    Args:
        workbook: Parsed timesheet workbook
        sheet_names: Sheets to read (defaults to the first sheet)
        start: Period start label (defaults to the first date column)
        end: Period end label (defaults to the last date column)
        threshold: Low-hours threshold for warnings
        top_n: Number of features named in the summary
        silent: If True, suppress print statements (for API usage)

    Raises:
        InvalidRangeError: Bounds not found, or no date columns at all
    """
    sheet_names = select_sheets(workbook, sheet_names)

    date_columns = discover_date_columns(workbook, sheet_names)
    if not silent:
        print(f"Found {len(date_columns)} date columns across {len(sheet_names)} sheet(s)")

    if start is None or end is None:
        defaults = reconcile_range(date_columns, start, end)
        start = defaults.start if start is None else start
        end = defaults.end if end is None else end

    active_columns = select_range(date_columns, start, end)
    features, daily_totals = aggregate(workbook, sheet_names, active_columns)
    warnings = detect_low_hour_days(daily_totals, threshold)
    summary = synthesize_summary(features, start, end, top_n)

    if not silent:
        total_hours = sum(row["hours"] for row in features)
        print(
            f"Billing period {active_columns[0]} to {active_columns[-1]}: "
            f"{len(features)} features, {total_hours:.1f} total hours"
        )
        if warnings:
            print(f"Low hours detected on {len(warnings)} day(s):")
            for warning in warnings:
                print(f"  - {warning['date']}: {warning['hours']:.1f}h")

    return AggregationResult(
        date_columns=date_columns,
        active_columns=active_columns,
        features=features,
        daily_totals=daily_totals,
        warnings=warnings,
        summary=summary,
    )
