"""
SQLite database operations for generated invoices.
"""

import sqlite3
from datetime import date
from pathlib import Path

from core.config import DB_PATH
from core.errors import DuplicateInvoiceNumberError

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS invoices (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        invoice_number TEXT UNIQUE NOT NULL,
        period_start TEXT NOT NULL,
        period_end TEXT NOT NULL,
        total_hours REAL NOT NULL,
        total_amount REAL NOT NULL,
        create_date TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS api_requests (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        request_id TEXT UNIQUE NOT NULL,
        timestamp TEXT NOT NULL,
        endpoint TEXT NOT NULL,
        method TEXT NOT NULL,
        client_ip TEXT,
        file_size_bytes INTEGER,
        file_name TEXT,
        period_start TEXT,
        period_end TEXT,
        status_code INTEGER NOT NULL,
        error_code TEXT,
        error_message TEXT,
        processing_time_ms INTEGER NOT NULL,
        features_billed INTEGER,
        total_hours REAL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS api_request_details (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        request_id TEXT NOT NULL,
        detail_type TEXT NOT NULL CHECK(detail_type IN ('validation_error', 'low_hours', 'warning')),
        message TEXT NOT NULL,
        FOREIGN KEY (request_id) REFERENCES api_requests(request_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_api_requests_timestamp ON api_requests(timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_api_requests_status ON api_requests(status_code)",
    "CREATE INDEX IF NOT EXISTS idx_api_request_details_request ON api_request_details(request_id)",
]


# Seconds to wait for another writer to finish allocating a number
BUSY_TIMEOUT = 30


def get_connection(db_path: Path = DB_PATH) -> sqlite3.Connection:
    """Get a database connection."""
    return sqlite3.connect(db_path, timeout=BUSY_TIMEOUT)


def create_schema(conn: sqlite3.Connection) -> None:
    """Create invoice and API logging tables if they don't exist."""
    cursor = conn.cursor()
    for statement in SCHEMA:
        cursor.execute(statement)
    conn.commit()


def begin_write(conn: sqlite3.Connection) -> None:
    """
    Take the database write lock now rather than at the first INSERT.

    Number allocation and the invoice insert must happen under one lock, so
    concurrent writers never read the same highest suffix. The transaction
    ends with the commit in create_invoice_record, or with a rollback.
    """
    conn.execute("BEGIN IMMEDIATE")


def generate_invoice_number(issue_date: date, conn: sqlite3.Connection) -> str:
    """
    Generate unique invoice number with auto-incremented suffix.

    Example: INV-2025-11-a, INV-2025-11-b

    Raises:
        RuntimeError: All suffixes a-z are used for the month
    """
    base_pattern = f"INV-{issue_date.strftime('%Y-%m')}-"

    cursor = conn.cursor()
    cursor.execute(
        "SELECT invoice_number FROM invoices WHERE invoice_number LIKE ? ORDER BY invoice_number DESC",
        (f"{base_pattern}%",),
    )
    existing = cursor.fetchall()

    if not existing:
        return f"{base_pattern}a"

    # Find the highest suffix
    highest_suffix = "a"
    for (number,) in existing:
        suffix = number.replace(base_pattern, "")
        if suffix and suffix > highest_suffix:
            highest_suffix = suffix

    if highest_suffix >= "z":
        raise RuntimeError(f"Too many invoices for {issue_date.strftime('%Y-%m')}")

    next_suffix = chr(ord(highest_suffix) + 1)
    return f"{base_pattern}{next_suffix}"


def invoice_number_exists(conn: sqlite3.Connection, invoice_number: str) -> bool:
    cursor = conn.cursor()
    cursor.execute("SELECT 1 FROM invoices WHERE invoice_number = ?", (invoice_number,))
    return cursor.fetchone() is not None


def reserve_invoice_number(
    conn: sqlite3.Connection, issue_date: date, invoice_number: str = ""
) -> str:
    """
    Allocate the next number, or check that a caller-supplied one is free.

    Call after begin_write() so the number stays free until it is recorded.

    Raises:
        DuplicateInvoiceNumberError: The supplied number is already recorded
    """
    if not invoice_number:
        return generate_invoice_number(issue_date, conn)
    if invoice_number_exists(conn, invoice_number):
        raise DuplicateInvoiceNumberError(invoice_number)
    return invoice_number


def create_invoice_record(
    conn: sqlite3.Connection,
    invoice_number: str,
    period_start: str,
    period_end: str,
    total_hours: float,
    total_amount: float,
) -> int:
    """Create invoice record and return invoice_id."""
    cursor = conn.cursor()
    try:
        cursor.execute(
            """
            INSERT INTO invoices (
                invoice_number, period_start, period_end, total_hours, total_amount
            ) VALUES (?, ?, ?, ?, ?)
            """,
            (invoice_number, period_start, period_end, total_hours, total_amount),
        )
    except sqlite3.IntegrityError as e:
        raise DuplicateInvoiceNumberError(invoice_number) from e
    conn.commit()
    return cursor.lastrowid
