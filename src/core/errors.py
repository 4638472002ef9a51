"""
Errors raised while reading timesheets and selecting billing periods.
"""


class WorkbookParseError(ValueError):
    """The uploaded spreadsheet could not be decoded."""


class InvalidRangeError(ValueError):
    """The selected start/end dates are not usable as a billing period."""

    def __init__(self, message: str = "Invalid date range", start: str = "", end: str = ""):
        super().__init__(message)
        self.start = start
        self.end = end


class DuplicateInvoiceNumberError(ValueError):
    """The invoice number is already recorded for another invoice."""

    def __init__(self, invoice_number: str):
        super().__init__(f"Invoice number already exists: {invoice_number}")
        self.invoice_number = invoice_number
