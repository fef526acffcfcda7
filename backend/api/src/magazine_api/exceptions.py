"""FastAPI exception handlers for converting SubscriptionError to HTTP responses.

The ErrorCode-to-HTTP status mapping follows REST conventions:
- 400 Bad Request: Missing or invalid request fields
- 401 Unauthorized: Caller identity missing
- 404 Not Found: No ledger record
- 500 Internal Server Error: Configuration and ledger failures
- 502 Bad Gateway: Gateway failures without an upstream status

Usage:
    from magazine_api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)

from magazine_shared.models import ErrorCode, ErrorResponse, SubscriptionError

logger = logging.getLogger(__name__)

ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    # Client input errors -> 400
    ErrorCode.MISSING_WEBHOOK_FIELDS: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_WEBHOOK_STATUS: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_REQUEST_BODY: HTTP_400_BAD_REQUEST,
    # Identity -> 401
    ErrorCode.AUTH_REQUIRED: HTTP_401_UNAUTHORIZED,
    # Not found -> 404
    ErrorCode.PAYMENT_RECORD_NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorCode.SCHEDULE_NOT_FOUND: HTTP_404_NOT_FOUND,
    # Server-side -> 500
    ErrorCode.GATEWAY_NOT_CONFIGURED: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.LEDGER_WRITE_FAILED: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.LEDGER_READ_FAILED: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.DUPLICATE_PAYMENT_EVENT: HTTP_500_INTERNAL_SERVER_ERROR,
    # Gateway errors without a usable upstream status -> 502
    ErrorCode.PAYMENT_QUERY_FAILED: HTTP_502_BAD_GATEWAY,
    ErrorCode.SCHEDULE_CREATE_FAILED: HTTP_502_BAD_GATEWAY,
    ErrorCode.SCHEDULE_QUERY_FAILED: HTTP_502_BAD_GATEWAY,
    ErrorCode.SCHEDULE_CANCEL_FAILED: HTTP_502_BAD_GATEWAY,
    ErrorCode.CHARGE_FAILED: HTTP_502_BAD_GATEWAY,
    ErrorCode.PAYMENT_CANCEL_FAILED: HTTP_502_BAD_GATEWAY,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    """Get HTTP status code for an ErrorCode (400 if not explicitly mapped)."""
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_400_BAD_REQUEST)


async def subscription_error_handler(
    request: Request, exc: SubscriptionError
) -> JSONResponse:
    """Convert SubscriptionError to a JSON error response.

    Args:
        request: The incoming request (unused but required by FastAPI)
        exc: The SubscriptionError exception

    Returns:
        JSONResponse with error details and appropriate status code.
    """
    status_code = get_http_status_for_error(exc.code)
    if status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s on %s: %s", exc.code.value, request.url.path, exc.message)

    return JSONResponse(
        status_code=status_code,
        content=exc.to_error_response().model_dump(mode="json"),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report request validation failures as 400 with the standard error body."""
    details = {
        ".".join(str(part) for part in error.get("loc", [])): error.get("msg", "")
        for error in exc.errors()
    }
    error_response = ErrorResponse.from_code(ErrorCode.INVALID_REQUEST_BODY, details)
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content=error_response.model_dump(mode="json"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(SubscriptionError, subscription_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
