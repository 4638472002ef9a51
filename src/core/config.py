"""
Configuration constants and environment setup.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = PROJECT_ROOT / "data" / "db" / "sheet-invoice.db"
OUTPUT_DIR = PROJECT_ROOT / "output"

# =============================================================================
# TIMESHEET CONFIGURATION
# =============================================================================

# Header cells like "3/14" (month/day, no year)
DATE_COLUMN_PATTERN = r"^\d{1,2}/\d{1,2}$"

# Column holding the work-item label (matched case-insensitively)
FEATURE_COLUMN = "feature"
UNCATEGORIZED_LABEL = "Uncategorized"

# Days with a total strictly between 0 and this value are flagged
LOW_HOURS_THRESHOLD = 8.0

# Number of labels named in the invoice summary
SUMMARY_TOP_N = 3

SUPPORTED_EXTENSIONS = {".xlsx", ".xlsm", ".numbers"}

# =============================================================================
# INVOICE CONFIGURATION
# =============================================================================

INVOICE_HEADERS = ["Feature", "Hours", "Rate", "Amount"]
DAILY_HOURS_HEADERS = ["Date", "Hours", "Status"]

# =============================================================================
# API CONFIGURATION
# =============================================================================

INVOICE_API_KEY = os.environ.get("INVOICE_API_KEY", "")
API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
MAX_UPLOAD_SIZE_MB = int(os.environ.get("MAX_UPLOAD_SIZE_MB", "20"))
MAX_UPLOAD_SIZE_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024
API_VERSION = "1.0.0"
