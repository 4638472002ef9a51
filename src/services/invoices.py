"""
Invoice Generation Service (Excel Version)

Generates a client invoice from an aggregated timesheet. The billing period's
feature totals become invoice lines (hours x hourly rate) with Excel formulas
for amounts, subtotal, tax and total, and a second sheet lists the daily
totals with low-hour days highlighted.
"""

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Any

from openpyxl import Workbook as ExcelWorkbook
from openpyxl.styles import Alignment, Color, Font, PatternFill

from core.config import DAILY_HOURS_HEADERS, INVOICE_HEADERS, OUTPUT_DIR
from models.invoices import InvoiceProfile
from models.timesheets import AggregationResult, FeatureRow, Workbook
from services.timesheets import process_timesheet
from services.workbooks import load_workbook_from_path


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class InvoiceTotals:
    """Invoice arithmetic for one billing period."""

    total_hours: float
    subtotal: float
    tax: float
    total: float


@dataclass
class InvoiceResult:
    """Result of invoice generation processing."""

    workbook: Any  # openpyxl.Workbook
    aggregation: AggregationResult
    totals: InvoiceTotals
    profile: InvoiceProfile


# =============================================================================
# CONSTANTS
# =============================================================================

INVOICE_SHEET_NAME = "Invoice"
DAILY_SHEET_NAME = "Daily Hours"

HEADER_FONT = Font(bold=True, color=Color(rgb="FFFFFFFF"))
HEADER_FILL = PatternFill(patternType="solid", fgColor=Color(indexed=11))
LOW_HOURS_FILL = PatternFill(patternType="solid", fgColor=Color(rgb="FFFFE699"))

INVOICE_COLUMN_WIDTHS = {"A": 44.0, "B": 12.0, "C": 18.0, "D": 18.0}
DAILY_COLUMN_WIDTHS = {"A": 12.0, "B": 10.0, "C": 14.0}


# =============================================================================
# CALCULATIONS
# =============================================================================


def calculate_line_amount(hours: float, rate: float) -> float:
    return hours * rate


def calculate_totals(features: list[FeatureRow], profile: InvoiceProfile) -> InvoiceTotals:
    """Subtotal from hours x rate, tax as a percentage of the subtotal."""
    total_hours = sum(row["hours"] for row in features)
    subtotal = sum(calculate_line_amount(row["hours"], profile.hourly_rate) for row in features)
    tax = subtotal * (profile.tax_rate / 100)
    return InvoiceTotals(
        total_hours=total_hours,
        subtotal=subtotal,
        tax=tax,
        total=subtotal + tax,
    )


def currency_format(currency: str) -> str:
    """Excel number format showing the currency symbol before the amount."""
    symbol = currency.replace('"', "").strip()
    if not symbol:
        return "#,##0.00"
    return f'"{symbol}" #,##0.00'


def format_money(amount: float, currency: str) -> str:
    """Format as 'currency 1,234.50' for console output."""
    return f"{currency} {amount:,.2f}"


# =============================================================================
# FILENAMES
# =============================================================================


def period_slug(label: str) -> str:
    """Turn a 'M/D' label into a filename-safe 'MM-DD'."""
    month, day = label.split("/")
    return f"{int(month):02d}-{int(day):02d}"


def build_invoice_filename(aggregation: AggregationResult) -> str:
    """Invoice filename without version suffix, e.g. invoice_03-01_03-31.xlsx."""
    return f"invoice_{period_slug(aggregation.start)}_{period_slug(aggregation.end)}.xlsx"


def generate_output_filename(aggregation: AggregationResult) -> Path:
    """
    Generate output filename with versioning.

    Adds _a, _b, _c suffix if file exists for proper alphabetical sorting.
    """
    output_dir = OUTPUT_DIR / "invoices"
    output_dir.mkdir(parents=True, exist_ok=True)
    base_name = build_invoice_filename(aggregation).removesuffix(".xlsx")

    suffix_char = ord("a")

    while True:
        output_path = output_dir / f"{base_name}_{chr(suffix_char)}.xlsx"
        if not output_path.exists():
            return output_path
        suffix_char += 1
        if suffix_char > ord("z"):
            raise RuntimeError("Too many output files exist")


# =============================================================================
# EXCEL RENDERING
# =============================================================================


def write_lines(ws, start_row: int, lines: list[str], bold_first: bool = False) -> int:
    """Write one value per row in column A, returning the next free row."""
    row = start_row
    for idx, line in enumerate(lines):
        if not line:
            continue
        cell = ws.cell(row=row, column=1, value=line)
        if bold_first and idx == 0:
            cell.font = Font(bold=True)
        row += 1
    return row


def write_invoice_sheet(ws, aggregation: AggregationResult, profile: InvoiceProfile) -> None:
    """Write the invoice cover: parties, lines with formulas, totals and payment details."""
    money_format = currency_format(profile.currency)

    ws.sheet_view.showGridLines = False
    for col_letter, width in INVOICE_COLUMN_WIDTHS.items():
        ws.column_dimensions[col_letter].width = width

    # Business header
    ws.cell(row=1, column=1, value=profile.company_name).font = Font(bold=True, size=16)
    title = ws.cell(row=1, column=4, value="INVOICE")
    title.font = Font(bold=True, size=20)
    title.alignment = Alignment(horizontal="right")

    ws.cell(row=2, column=3, value="Invoice No")
    ws.cell(row=2, column=4, value=profile.invoice_number or "DRAFT")
    ws.cell(row=3, column=3, value="Date")
    ws.cell(row=3, column=4, value=profile.invoice_date)
    ws.cell(row=4, column=3, value="Period")
    ws.cell(row=4, column=4, value=f"{aggregation.start} - {aggregation.end}")

    business_lines = [f"Tax Code: {profile.tax_code}" if profile.tax_code else ""]
    business_lines += profile.address.splitlines() + [profile.email]
    row = write_lines(ws, 2, business_lines)
    row = max(row, 5) + 1

    # Bill to
    client_lines = ["Bill To", profile.client_name]
    client_lines += profile.client_address.splitlines()
    client_lines += [profile.client_email, profile.client_phone]
    row = write_lines(ws, row, client_lines, bold_first=True) + 1

    # Description and summary
    if profile.description:
        row = write_lines(ws, row, ["Description", profile.description], bold_first=True)
    if aggregation.summary:
        ws.cell(row=row, column=1, value=aggregation.summary).font = Font(italic=True)
        row += 1
    row += 1

    # Line items
    header_row = row
    for col_idx, header in enumerate(INVOICE_HEADERS, start=1):
        cell = ws.cell(row=header_row, column=col_idx, value=header)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL

    first_line = header_row + 1
    for offset, item in enumerate(aggregation.features):
        line_row = first_line + offset
        ws.cell(row=line_row, column=1, value=item["feature"])
        ws.cell(row=line_row, column=2, value=item["hours"]).number_format = "0.00"
        ws.cell(row=line_row, column=3, value=profile.hourly_rate).number_format = money_format
        amount = ws.cell(row=line_row, column=4, value=f"=B{line_row}*C{line_row}")
        amount.number_format = money_format
    last_line = first_line + len(aggregation.features) - 1

    # Totals
    subtotal_row = last_line + 2
    ws.cell(row=subtotal_row, column=1, value="Total hours").font = Font(bold=True)
    hours_total = ws.cell(row=subtotal_row, column=2, value=f"=SUM(B{first_line}:B{last_line})")
    hours_total.number_format = "0.00"
    hours_total.font = Font(bold=True)
    ws.cell(row=subtotal_row, column=3, value="Subtotal")
    ws.cell(
        row=subtotal_row, column=4, value=f"=SUM(D{first_line}:D{last_line})"
    ).number_format = money_format

    total_row = subtotal_row + 1
    total_formula = f"=D{subtotal_row}"
    if profile.tax_rate > 0:
        tax_row = subtotal_row + 1
        ws.cell(row=tax_row, column=3, value=f"Tax ({profile.tax_rate:g}%)")
        ws.cell(
            row=tax_row, column=4, value=f"=D{subtotal_row}*{profile.tax_rate}/100"
        ).number_format = money_format
        total_row = tax_row + 1
        total_formula = f"=D{subtotal_row}+D{tax_row}"

    ws.cell(row=total_row, column=3, value="Total").font = Font(bold=True)
    total_cell = ws.cell(row=total_row, column=4, value=total_formula)
    total_cell.number_format = money_format
    total_cell.font = Font(bold=True)

    # Payment details
    row = total_row + 2
    ws.cell(row=row, column=1, value="Payment Details").font = Font(bold=True)
    payment_fields = [
        ("Bank", profile.bank_name),
        ("Bank Address", profile.bank_address),
        ("SWIFT / BIC", profile.swift_code),
        ("Account Name", profile.account_name),
        ("Account / IBAN", profile.account_number),
        ("Account Holder Address", profile.account_holder_address),
    ]
    for label, value in payment_fields:
        if not value:
            continue
        row += 1
        ws.cell(row=row, column=1, value=label)
        ws.cell(row=row, column=2, value=value)

    if profile.notes:
        ws.cell(row=row + 2, column=1, value=profile.notes).font = Font(italic=True)


def create_daily_hours_sheet(wb, aggregation: AggregationResult) -> None:
    """Create a worksheet with one row per billed day and a total row."""
    ws = wb.create_sheet(title=DAILY_SHEET_NAME)
    ws.sheet_view.showGridLines = False

    for col_idx, header in enumerate(DAILY_HOURS_HEADERS, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL

    low_dates = {warning["date"] for warning in aggregation.warnings}

    first_data_row = 2
    for offset, (date_label, hours) in enumerate(aggregation.daily_totals.items()):
        data_row = first_data_row + offset
        ws.cell(row=data_row, column=1, value=date_label)
        ws.cell(row=data_row, column=2, value=hours).number_format = "0.00"

        if date_label in low_dates:
            ws.cell(row=data_row, column=3, value="Low hours")
            for col in range(1, 4):
                ws.cell(row=data_row, column=col).fill = LOW_HOURS_FILL
        elif hours == 0:
            ws.cell(row=data_row, column=3, value="No hours")

    last_data_row = first_data_row + len(aggregation.daily_totals) - 1
    total_row = last_data_row + 1
    ws.cell(row=total_row, column=1, value="Total").font = Font(bold=True)
    total_cell = ws.cell(
        row=total_row, column=2, value=f"=SUM(B{first_data_row}:B{last_data_row})"
    )
    total_cell.font = Font(bold=True)
    total_cell.number_format = "0.00"

    for col_letter, width in DAILY_COLUMN_WIDTHS.items():
        ws.column_dimensions[col_letter].width = width


def create_invoice_workbook(aggregation: AggregationResult, profile: InvoiceProfile):
    """Create the output Excel workbook with invoice and daily hours sheets."""
    wb = ExcelWorkbook()
    ws = wb.active
    ws.title = INVOICE_SHEET_NAME
    write_invoice_sheet(ws, aggregation, profile)
    create_daily_hours_sheet(wb, aggregation)
    return wb


# =============================================================================
# MAIN ENTRY POINTS
# =============================================================================


def _process_invoice(
    timesheet: Workbook,
    sheet_names: list[str] | None,
    start: str | None,
    end: str | None,
    profile: InvoiceProfile,
    silent: bool = False,
) -> InvoiceResult:
    """
    Core invoice processing logic shared by file and bytes generators.

    Raises:
        InvalidRangeError: Billing period not found in the timesheet
        ValueError: No billable hours in the selected range
    """
    aggregation = process_timesheet(timesheet, sheet_names, start, end, silent=silent)

    if not aggregation.features:
        raise ValueError("No billable hours found in selected range")

    totals = calculate_totals(aggregation.features, profile)
    wb = create_invoice_workbook(aggregation, profile)

    if not silent:
        print(f"Subtotal: {format_money(totals.subtotal, profile.currency)}")
        if profile.tax_rate > 0:
            print(f"Tax ({profile.tax_rate:g}%): {format_money(totals.tax, profile.currency)}")
        print(f"Total: {format_money(totals.total, profile.currency)}")

    return InvoiceResult(workbook=wb, aggregation=aggregation, totals=totals, profile=profile)


def generate_invoice_to_bytes(
    timesheet: Workbook,
    sheet_names: list[str] | None = None,
    start: str | None = None,
    end: str | None = None,
    profile: InvoiceProfile | None = None,
) -> tuple[bytes, str, InvoiceResult]:
    """
    Generate an invoice and return it as bytes (for API usage).

    Returns:
        Tuple of (excel_bytes, filename, result)
    """
    result = _process_invoice(
        timesheet, sheet_names, start, end, profile or InvoiceProfile(), silent=True
    )

    buffer = BytesIO()
    result.workbook.save(buffer)
    buffer.seek(0)

    return buffer.getvalue(), build_invoice_filename(result.aggregation), result


def generate_invoice(
    input_file: Path,
    sheet_names: list[str] | None = None,
    start: str | None = None,
    end: str | None = None,
    profile: InvoiceProfile | None = None,
) -> tuple[Path, InvoiceResult]:
    """
    Main entry point for invoice generation (file output).

    Returns:
        Tuple of (path to the generated invoice file, result)
    """
    print(f"Reading input file: {input_file}")
    timesheet = load_workbook_from_path(input_file)

    result = _process_invoice(timesheet, sheet_names, start, end, profile or InvoiceProfile())

    output_file = generate_output_filename(result.aggregation)
    print(f"Writing output: {output_file}")
    result.workbook.save(str(output_file))

    return output_file, result
