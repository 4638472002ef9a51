"""Shared helpers for endpoints that accept a timesheet upload."""

import time
from pathlib import Path

from fastapi import HTTPException, Request, UploadFile, status

from api.logging import RequestLog
from api.models.responses import ErrorCodes
from core.config import MAX_UPLOAD_SIZE_BYTES, SUPPORTED_EXTENSIONS


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def api_error(status_code: int, error: str, code: str, details: list[str] | None = None) -> HTTPException:
    """Build an HTTPException carrying the standard error body."""
    return HTTPException(
        status_code=status_code,
        detail={"error": error, "code": code, "details": details or []},
    )


async def read_upload(file: UploadFile, request_log: RequestLog) -> bytes:
    """
    Validate and read an uploaded timesheet.

    Raises:
        HTTPException: 400 missing file, 415 unsupported type, 413 too large
    """
    if not file or not file.filename:
        raise api_error(status.HTTP_400_BAD_REQUEST, "No file provided", ErrorCodes.INVALID_REQUEST)

    suffix = Path(file.filename).suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise api_error(
            status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            "File is not a supported spreadsheet",
            ErrorCodes.UNSUPPORTED_MEDIA_TYPE,
            [f"Received: {file.filename}", f"Supported: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"],
        )

    file_content = await file.read()
    request_log.file_size_bytes = len(file_content)

    if len(file_content) > MAX_UPLOAD_SIZE_BYTES:
        max_mb = MAX_UPLOAD_SIZE_BYTES // (1024 * 1024)
        raise api_error(
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            f"File exceeds maximum size of {max_mb} MB",
            ErrorCodes.FILE_TOO_LARGE,
            [f"File size: {len(file_content) / (1024*1024):.1f} MB"],
        )

    return file_content


def record_http_error(request_log: RequestLog, error: HTTPException, start_time: float) -> None:
    """Copy an HTTPException's status and body into the request log."""
    request_log.status_code = error.status_code
    if isinstance(error.detail, dict):
        request_log.error_code = error.detail.get("code")
        request_log.error_message = error.detail.get("error")
        for detail in error.detail.get("details", []):
            request_log.details.append(("validation_error", detail))
    else:
        request_log.error_message = str(error.detail)
    request_log.processing_time_ms = int((time.time() - start_time) * 1000)
