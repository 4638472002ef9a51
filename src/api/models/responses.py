"""Pydantic response models for API endpoints."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    database_available: bool
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class InspectResponse(BaseModel):
    """Sheets and date columns found in an uploaded timesheet."""

    sheet_names: list[str]
    selected_sheets: list[str]
    date_columns: list[str]
    default_start: str
    default_end: str


class FeatureHours(BaseModel):
    feature: str
    hours: float


class LowHoursDay(BaseModel):
    date: str
    hours: float


class PreviewResponse(BaseModel):
    """Aggregated hours for a billing period, before rendering an invoice."""

    start: str
    end: str
    features: list[FeatureHours]
    daily_totals: dict[str, float]
    warnings: list[LowHoursDay]
    summary: str
    total_hours: float


class ErrorCodes:
    """Error code constants."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    UNSUPPORTED_MEDIA_TYPE = "UNSUPPORTED_MEDIA_TYPE"
    PARSE_ERROR = "PARSE_ERROR"
    INVALID_RANGE = "INVALID_RANGE"
    NO_BILLABLE_HOURS = "NO_BILLABLE_HOURS"
    INVOICE_NUMBER_CONFLICT = "INVOICE_NUMBER_CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"
