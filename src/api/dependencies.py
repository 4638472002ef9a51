"""FastAPI dependencies for authentication."""

import secrets
from typing import Annotated

from fastapi import Header, status

from api.models.responses import ErrorCodes
from api.uploads import api_error
from core.config import INVOICE_API_KEY


async def verify_api_key(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> str:
    """
    Check the X-API-Key header against INVOICE_API_KEY.

    Raises:
        HTTPException: 500 when the server has no key configured,
            401 when the header is missing or does not match
    """
    if not INVOICE_API_KEY:
        raise api_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "API key not configured on server",
            ErrorCodes.INTERNAL_ERROR,
        )

    if not x_api_key:
        raise api_error(
            status.HTTP_401_UNAUTHORIZED,
            "Missing API key",
            ErrorCodes.UNAUTHORIZED,
            ["Send the key in the X-API-Key header"],
        )

    if not secrets.compare_digest(x_api_key.encode(), INVOICE_API_KEY.encode()):
        raise api_error(status.HTTP_401_UNAUTHORIZED, "Invalid API key", ErrorCodes.UNAUTHORIZED)

    return x_api_key
