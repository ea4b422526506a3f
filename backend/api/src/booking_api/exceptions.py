"""FastAPI exception handlers for converting BookingError to HTTP responses.

Every error body has the ``ErrorResponse`` shape:
``{success: false, error, error_code, recovery, details}``.

The ErrorCode-to-HTTP status mapping:
- 400 Bad Request: validation failures, bad webhook signatures
- 401 Unauthorized: missing or wrong cron token
- 404 Not Found: unknown order
- 409 Conflict: order state does not allow the operation
- 500 Internal Server Error: number generation exhausted, cron not configured
- 503 Service Unavailable: Stripe, SES or DynamoDB unavailable, or the
  order kept changing (retryable)

Usage:
    from booking_api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from booking_core.models.errors import BookingError, ErrorCode
from booking_core.utils.logging import get_logger

logger = get_logger(__name__)

ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_FAILED: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: HTTP_400_BAD_REQUEST,
    ErrorCode.UNAUTHORIZED: HTTP_401_UNAUTHORIZED,
    ErrorCode.ORDER_NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_STATE: HTTP_409_CONFLICT,
    ErrorCode.GENERATION_EXHAUSTED: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.CRON_NOT_CONFIGURED: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.CONCURRENT_MODIFICATION: HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.DATASTORE_UNAVAILABLE: HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.GATEWAY_UNAVAILABLE: HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.NOTIFICATION_FAILED: HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.INTERNAL: HTTP_500_INTERNAL_SERVER_ERROR,
}

REQUEST_VALIDATION_MESSAGE = "Request validation failed"


def get_http_status_for_error(code: ErrorCode) -> int:
    """Get HTTP status code for an ErrorCode.

    Args:
        code: The ErrorCode to map

    Returns:
        HTTP status code, defaults to 400 if not explicitly mapped.
    """
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_400_BAD_REQUEST)


def _error_json(status_code: int, error: BookingError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error.to_response().model_dump(mode="json"),
    )


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    """Convert a BookingError to its JSON body and mapped status."""
    status_code = get_http_status_for_error(exc.code)
    if status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code.value)
    return _error_json(status_code, exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report schema errors as 400 with one entry per offending field."""
    details = {
        ".".join(str(part) for part in error.get("loc", ()) if part != "body") or "body": error.get("msg", "")
        for error in exc.errors()
    }
    error = BookingError(
        code=ErrorCode.VALIDATION_FAILED,
        message=REQUEST_VALIDATION_MESSAGE,
        details=details,
    )
    return _error_json(HTTP_400_BAD_REQUEST, error)


async def datastore_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map botocore failures to 503 so callers (and Stripe) retry."""
    logger.exception("Datastore failure on %s %s", request.method, request.url.path)
    return _error_json(HTTP_503_SERVICE_UNAVAILABLE, BookingError(code=ErrorCode.DATASTORE_UNAVAILABLE))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with a generic error response.

    Internal details are logged, never returned to the client.
    """
    logger.exception("Unhandled exception: %s", exc)
    return _error_json(HTTP_500_INTERNAL_SERVER_ERROR, BookingError(code=ErrorCode.INTERNAL))


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(BookingError, booking_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ClientError, datastore_error_handler)
    app.add_exception_handler(BotoCoreError, datastore_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
