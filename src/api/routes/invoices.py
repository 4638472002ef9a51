"""Invoice preview and generation endpoints."""

import asyncio
import json
import time
from datetime import date
from typing import Annotated

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Request,
    UploadFile,
    status,
)
from fastapi.responses import Response
from pydantic import ValidationError

from api.dependencies import verify_api_key
from api.logging import RequestLog, log_request
from api.models.responses import ErrorCodes, PreviewResponse
from api.uploads import api_error, get_client_ip, read_upload, record_http_error
from core.config import DB_PATH
from core.database import (
    begin_write,
    create_invoice_record,
    get_connection,
    reserve_invoice_number,
)
from core.errors import DuplicateInvoiceNumberError, InvalidRangeError, WorkbookParseError
from models.invoices import InvoiceProfile
from models.timesheets import AggregationResult
from services.invoices import InvoiceResult, generate_invoice_to_bytes
from services.timesheets import process_timesheet
from services.workbooks import load_workbook_from_bytes

router = APIRouter(prefix="/v1")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def parse_profile(profile_json: str | None) -> InvoiceProfile:
    """Parse the invoice profile form field (JSON object) into an InvoiceProfile."""
    if not profile_json:
        return InvoiceProfile()
    try:
        return InvoiceProfile.model_validate(json.loads(profile_json))
    except json.JSONDecodeError as e:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "Invalid profile JSON",
            ErrorCodes.INVALID_REQUEST,
            [str(e)],
        )
    except ValidationError as e:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "Invalid invoice profile",
            ErrorCodes.INVALID_REQUEST,
            [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
        )


def _preview_in_thread(
    file_content: bytes,
    filename: str,
    sheets: list[str] | None,
    start: str | None,
    end: str | None,
) -> AggregationResult:
    """Decode the upload and aggregate hours (runs in thread pool)."""
    workbook = load_workbook_from_bytes(file_content, filename)
    return process_timesheet(workbook, sheets, start, end, silent=True)


def _generate_in_thread(
    file_content: bytes,
    filename: str,
    sheets: list[str] | None,
    start: str | None,
    end: str | None,
    profile: InvoiceProfile,
) -> tuple[bytes, str, InvoiceResult]:
    """
    Decode the upload and render the invoice (runs in thread pool).

    When the database exists, an invoice number is allocated (unless the
    profile carries one) and the invoice is recorded.
    """
    workbook = load_workbook_from_bytes(file_content, filename)

    if not DB_PATH.exists():
        return generate_invoice_to_bytes(workbook, sheets, start, end, profile)

    conn = get_connection(DB_PATH)
    try:
        begin_write(conn)
        profile.invoice_number = reserve_invoice_number(
            conn, date.today(), profile.invoice_number
        )

        excel_bytes, output_filename, result = generate_invoice_to_bytes(
            workbook, sheets, start, end, profile
        )
        create_invoice_record(
            conn,
            profile.invoice_number,
            result.aggregation.start,
            result.aggregation.end,
            result.totals.total_hours,
            result.totals.total,
        )
        return excel_bytes, output_filename, result
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def record_aggregation(request_log: RequestLog, aggregation: AggregationResult) -> None:
    request_log.period_start = aggregation.start
    request_log.period_end = aggregation.end
    request_log.features_billed = len(aggregation.features)
    request_log.total_hours = aggregation.total_hours
    for warning in aggregation.warnings:
        request_log.details.append(("low_hours", f"{warning['date']}: {warning['hours']:.1f}h"))


def handle_processing_error(request_log: RequestLog, e: Exception, start_time: float) -> HTTPException:
    """Map service errors to API errors and record them in the request log."""
    if isinstance(e, InvalidRangeError):
        error = api_error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Invalid date range",
            ErrorCodes.INVALID_RANGE,
            [str(e)],
        )
    elif isinstance(e, DuplicateInvoiceNumberError):
        error = api_error(
            status.HTTP_409_CONFLICT,
            "Invoice number already used",
            ErrorCodes.INVOICE_NUMBER_CONFLICT,
            [str(e)],
        )
    elif isinstance(e, WorkbookParseError):
        error = api_error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Timesheet could not be read",
            ErrorCodes.PARSE_ERROR,
            [str(e)],
        )
    elif isinstance(e, ValueError):
        error = api_error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "No billable hours in selected range",
            ErrorCodes.NO_BILLABLE_HOURS,
            [str(e)],
        )
    else:
        error = api_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            ErrorCodes.INTERNAL_ERROR,
        )

    record_http_error(request_log, error, start_time)
    request_log.error_message = str(e)
    return error


@router.post("/invoices/preview", response_model=PreviewResponse)
async def preview_invoice_endpoint(
    request: Request,
    file: Annotated[UploadFile, File(description="Timesheet spreadsheet (.xlsx or .numbers)")],
    sheets: Annotated[
        list[str] | None, Form(description="Sheets to include (defaults to the first sheet)")
    ] = None,
    start: Annotated[str | None, Form(description="Period start column, e.g. 3/1")] = None,
    end: Annotated[str | None, Form(description="Period end column, e.g. 3/31")] = None,
    _api_key: str = Depends(verify_api_key),
):
    """
    Aggregate hours for a billing period without rendering the invoice.

    Returns per-feature hours, daily totals, low-hour warnings and the summary.
    """
    start_time = time.time()

    request_log = RequestLog(
        endpoint="/v1/invoices/preview",
        method="POST",
        client_ip=get_client_ip(request),
        file_name=file.filename,
    )

    try:
        file_content = await read_upload(file, request_log)

        aggregation = await asyncio.to_thread(
            _preview_in_thread, file_content, file.filename, sheets, start, end
        )

        request_log.status_code = 200
        record_aggregation(request_log, aggregation)
        request_log.processing_time_ms = int((time.time() - start_time) * 1000)

        return PreviewResponse(
            start=aggregation.start,
            end=aggregation.end,
            features=aggregation.features,
            daily_totals=aggregation.daily_totals,
            warnings=aggregation.warnings,
            summary=aggregation.summary,
            total_hours=aggregation.total_hours,
        )

    except HTTPException as e:
        record_http_error(request_log, e, start_time)
        raise

    except Exception as e:
        raise handle_processing_error(request_log, e, start_time) from e

    finally:
        # Always log the request
        try:
            log_request(request_log)
        except Exception:
            # Don't fail the request if logging fails
            pass


@router.post("/invoices/generate")
async def generate_invoice_endpoint(
    request: Request,
    file: Annotated[UploadFile, File(description="Timesheet spreadsheet (.xlsx or .numbers)")],
    sheets: Annotated[
        list[str] | None, Form(description="Sheets to include (defaults to the first sheet)")
    ] = None,
    start: Annotated[str | None, Form(description="Period start column, e.g. 3/1")] = None,
    end: Annotated[str | None, Form(description="Period end column, e.g. 3/31")] = None,
    profile: Annotated[
        str | None, Form(description="Invoice profile as a JSON object")
    ] = None,
    _api_key: str = Depends(verify_api_key),
):
    """
    Generate an invoice from a timesheet upload.

    Accepts an Excel or Numbers timesheet and returns an Excel invoice.
    """
    start_time = time.time()

    request_log = RequestLog(
        endpoint="/v1/invoices/generate",
        method="POST",
        client_ip=get_client_ip(request),
        file_name=file.filename,
    )

    try:
        invoice_profile = parse_profile(profile)
        file_content = await read_upload(file, request_log)

        # Use thread pool for sync decoding, rendering and database access
        excel_bytes, output_filename, result = await asyncio.to_thread(
            _generate_in_thread,
            file_content,
            file.filename,
            sheets,
            start,
            end,
            invoice_profile,
        )

        request_log.status_code = 200
        record_aggregation(request_log, result.aggregation)
        request_log.processing_time_ms = int((time.time() - start_time) * 1000)

        return Response(
            content=excel_bytes,
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{output_filename}"'},
        )

    except HTTPException as e:
        record_http_error(request_log, e, start_time)
        raise

    except Exception as e:
        raise handle_processing_error(request_log, e, start_time) from e

    finally:
        # Always log the request
        try:
            log_request(request_log)
        except Exception:
            # Don't fail the request if logging fails
            pass
