"""Timesheet inspection endpoint."""

import asyncio
import time
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status

from api.dependencies import verify_api_key
from api.logging import RequestLog, log_request
from api.models.responses import ErrorCodes, InspectResponse
from api.uploads import api_error, get_client_ip, read_upload, record_http_error
from core.errors import WorkbookParseError
from services.timesheets import discover_date_columns, reconcile_range, select_sheets
from services.workbooks import load_workbook_from_bytes

router = APIRouter(prefix="/v1")


@router.post("/timesheets/inspect", response_model=InspectResponse)
async def inspect_timesheet_endpoint(
    request: Request,
    file: Annotated[UploadFile, File(description="Timesheet spreadsheet (.xlsx or .numbers)")],
    sheets: Annotated[
        list[str] | None, Form(description="Sheets to scan (defaults to the first sheet)")
    ] = None,
    _api_key: str = Depends(verify_api_key),
):
    """
    List the sheets of an uploaded timesheet and the date columns found in
    the selected ones, with the default billing period (first to last date).
    """
    start_time = time.time()

    request_log = RequestLog(
        endpoint="/v1/timesheets/inspect",
        method="POST",
        client_ip=get_client_ip(request),
        file_name=file.filename,
    )

    try:
        file_content = await read_upload(file, request_log)
        workbook = await asyncio.to_thread(load_workbook_from_bytes, file_content, file.filename)

        selected = select_sheets(workbook, sheets)
        date_columns = discover_date_columns(workbook, selected)
        default_range = reconcile_range(date_columns, None, None)

        request_log.status_code = 200
        request_log.period_start = default_range.start or None
        request_log.period_end = default_range.end or None
        request_log.processing_time_ms = int((time.time() - start_time) * 1000)

        return InspectResponse(
            sheet_names=workbook.sheet_names,
            selected_sheets=selected,
            date_columns=date_columns,
            default_start=default_range.start,
            default_end=default_range.end,
        )

    except HTTPException as e:
        record_http_error(request_log, e, start_time)
        raise

    except WorkbookParseError as e:
        error = api_error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Timesheet could not be read",
            ErrorCodes.PARSE_ERROR,
            [str(e)],
        )
        record_http_error(request_log, error, start_time)
        raise error from e

    except Exception as e:
        # Unexpected errors
        error = api_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            ErrorCodes.INTERNAL_ERROR,
        )
        record_http_error(request_log, error, start_time)
        request_log.error_message = str(e)
        raise error from e

    finally:
        # Always log the request
        try:
            log_request(request_log)
        except Exception:
            # Don't fail the request if logging fails
            pass
