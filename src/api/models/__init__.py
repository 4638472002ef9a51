"""API Pydantic models."""

from .responses import (
    ErrorCodes,
    ErrorResponse,
    FeatureHours,
    HealthResponse,
    InspectResponse,
    LowHoursDay,
    PreviewResponse,
)

__all__ = [
    "HealthResponse",
    "ErrorResponse",
    "ErrorCodes",
    "InspectResponse",
    "PreviewResponse",
    "FeatureHours",
    "LowHoursDay",
]
