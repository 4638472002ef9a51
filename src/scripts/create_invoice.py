#!/usr/bin/env python3
"""
Generate a client invoice from a spreadsheet timesheet.

Reads a timesheet with a "Feature" column and month/day date columns (e.g.
"3/14"), sums hours per feature over the chosen billing period, and writes an
Excel invoice with a daily hours breakdown.

Usage:
    uv run python src/scripts/create_invoice.py <timesheet.xlsx> [--sheet NAME ...]
        [--start M/D] [--end M/D] [--profile profile.json] [--list]

Example:
    uv run python src/scripts/create_invoice.py timesheets/march.xlsx --start 3/1 --end 3/31
"""

import argparse
import json
import sys
from datetime import date
from pathlib import Path

from pydantic import ValidationError

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DB_PATH
from core.database import (
    begin_write,
    create_invoice_record,
    get_connection,
    reserve_invoice_number,
)
from models.invoices import InvoiceProfile
from services.invoices import generate_invoice
from services.timesheets import discover_date_columns, reconcile_range, select_sheets
from services.workbooks import load_workbook_from_path


def load_profile(profile_path: Path | None) -> InvoiceProfile:
    """Read an invoice profile from JSON, or fall back to the defaults."""
    if profile_path is None:
        return InvoiceProfile()

    if not profile_path.exists():
        raise FileNotFoundError(f"Profile file not found: {profile_path}")

    data = json.loads(profile_path.read_text(encoding="utf-8"))
    return InvoiceProfile.model_validate(data)


def list_timesheet(input_file: Path, sheet_names: list[str] | None) -> None:
    """Print sheet names and the date columns found in the selected sheets."""
    workbook = load_workbook_from_path(input_file)
    selected = select_sheets(workbook, sheet_names)

    print(f"File: {input_file}")
    print(f"Sheets: {len(workbook.sheet_names)}")
    for name in workbook.sheet_names:
        marker = "*" if name in selected else " "
        print(f"  {marker} {name}")

    date_columns = discover_date_columns(workbook, selected)
    default_range = reconcile_range(date_columns, None, None)
    print(f"\nDate columns: {', '.join(date_columns) if date_columns else '(none)'}")
    if date_columns:
        print(f"Default period: {default_range.start} to {default_range.end}")


def main():
    parser = argparse.ArgumentParser(
        description="Generate a client invoice from a spreadsheet timesheet"
    )
    parser.add_argument(
        "input_file",
        type=Path,
        help="Path to the timesheet (.xlsx or .numbers)",
    )
    parser.add_argument(
        "--sheet",
        dest="sheets",
        action="append",
        help="Sheet to include (repeatable, defaults to the first sheet)",
    )
    parser.add_argument("--start", help="First billed date column, e.g. 3/1")
    parser.add_argument("--end", help="Last billed date column, e.g. 3/31")
    parser.add_argument(
        "--profile",
        type=Path,
        help="JSON file with business, client and payment details",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List sheets and date columns, then exit",
    )

    args = parser.parse_args()

    try:
        if args.list:
            list_timesheet(args.input_file, args.sheets)
            return

        profile = load_profile(args.profile)

        conn = get_connection(DB_PATH) if DB_PATH.exists() else None
        output_path = None
        try:
            if conn:
                begin_write(conn)
                profile.invoice_number = reserve_invoice_number(
                    conn, date.today(), profile.invoice_number
                )

            output_path, result = generate_invoice(
                args.input_file, args.sheets, args.start, args.end, profile
            )

            if conn:
                create_invoice_record(
                    conn,
                    profile.invoice_number,
                    result.aggregation.start,
                    result.aggregation.end,
                    result.totals.total_hours,
                    result.totals.total,
                )
        except Exception:
            # No invoice file without a matching record
            if conn:
                conn.rollback()
            if output_path:
                output_path.unlink(missing_ok=True)
            raise
        finally:
            if conn:
                conn.close()

        if result.aggregation.summary:
            print(f"\n{result.aggregation.summary}")
        print(f"\nInvoice generated: {output_path}")
    except (ValidationError, json.JSONDecodeError) as e:
        print(f"\nError: invalid profile: {e}")
        sys.exit(1)
    except Exception as e:
        print(f"\nError: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
