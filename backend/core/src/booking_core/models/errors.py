"""Standard error codes and exceptions for the booking engine.

Every failure that crosses a service boundary is a ``BookingError`` carrying an
``ErrorCode``. The API layer maps codes to HTTP statuses; the body always has
the same ``ErrorResponse`` shape.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    # Request errors
    VALIDATION_FAILED = "ERR_VALIDATION"
    ORDER_NOT_FOUND = "ERR_NOT_FOUND"
    INVALID_STATE = "ERR_INVALID_STATE"

    # Internal errors
    GENERATION_EXHAUSTED = "ERR_GENERATION_EXHAUSTED"
    CONCURRENT_MODIFICATION = "ERR_CONCURRENT_MODIFICATION"
    DATASTORE_UNAVAILABLE = "ERR_DATASTORE"
    INTERNAL = "ERR_INTERNAL"

    # External collaborators
    GATEWAY_UNAVAILABLE = "ERR_GATEWAY"
    NOTIFICATION_FAILED = "ERR_NOTIFICATION"

    # Webhooks
    INVALID_WEBHOOK_SIGNATURE = "ERR_STRIPE_001"
    DUPLICATE_EVENT = "ERR_STRIPE_002"

    # Cron trigger
    CRON_NOT_CONFIGURED = "ERR_CRON_001"
    UNAUTHORIZED = "ERR_CRON_002"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.VALIDATION_FAILED: "Missing required fields",
    ErrorCode.ORDER_NOT_FOUND: "Order not found",
    ErrorCode.INVALID_STATE: "Order is not in a state that allows this operation",
    ErrorCode.GENERATION_EXHAUSTED: "Could not allocate a unique number",
    ErrorCode.CONCURRENT_MODIFICATION: "Order was modified concurrently",
    ErrorCode.DATASTORE_UNAVAILABLE: "Datastore is unavailable",
    ErrorCode.INTERNAL: "An unexpected error occurred",
    ErrorCode.GATEWAY_UNAVAILABLE: "Payment gateway is unavailable",
    ErrorCode.NOTIFICATION_FAILED: "Notification could not be delivered",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Invalid webhook signature",
    ErrorCode.DUPLICATE_EVENT: "Event already processed",
    ErrorCode.CRON_NOT_CONFIGURED: "Cron secret is not configured",
    ErrorCode.UNAUTHORIZED: "Unauthorized",
}

ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.VALIDATION_FAILED: "Check the request body and try again",
    ErrorCode.ORDER_NOT_FOUND: "Verify the order ID",
    ErrorCode.INVALID_STATE: "Check the order status before retrying",
    ErrorCode.GENERATION_EXHAUSTED: "Try again later",
    ErrorCode.CONCURRENT_MODIFICATION: "Retry the request",
    ErrorCode.DATASTORE_UNAVAILABLE: "Retry the request later",
    ErrorCode.INTERNAL: "Please try again later or contact support",
    ErrorCode.GATEWAY_UNAVAILABLE: "Try again in a few minutes",
    ErrorCode.NOTIFICATION_FAILED: "The operation succeeded; the message will not be resent",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Verify webhook secret configuration",
    ErrorCode.DUPLICATE_EVENT: "No action needed",
    ErrorCode.CRON_NOT_CONFIGURED: "Set the cron secret in SSM or CRON_SECRET",
    ErrorCode.UNAUTHORIZED: "Send a valid bearer token",
}


class ErrorResponse(BaseModel):
    """Standard JSON error body."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error: str
    error_code: ErrorCode
    recovery: str
    details: Optional[dict[str, str]] = None


class BookingError(Exception):
    """Base exception for booking engine failures.

    ``message`` overrides the default text for the code, used where the same
    code has several user-facing messages.
    """

    default_code = ErrorCode.VALIDATION_FAILED

    def __init__(
        self,
        code: Optional[ErrorCode] = None,
        message: Optional[str] = None,
        details: Optional[dict[str, str]] = None,
    ):
        self.code = code or self.default_code
        self.message = message or ERROR_MESSAGES[self.code]
        self.recovery = ERROR_RECOVERY[self.code]
        self.details = details
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        """Convert this exception to the standard error body."""
        return ErrorResponse(
            error=self.message,
            error_code=self.code,
            recovery=self.recovery,
            details=self.details,
        )


class BookingValidationError(BookingError):
    """Malformed or incomplete request."""

    default_code = ErrorCode.VALIDATION_FAILED


class NotFoundError(BookingError):
    """Unknown order, party or customer."""

    default_code = ErrorCode.ORDER_NOT_FOUND


class InvalidStateError(BookingError):
    """State machine precondition violated."""

    default_code = ErrorCode.INVALID_STATE


class GenerationExhausted(BookingError):
    """Number generator ran out of collision retries."""

    default_code = ErrorCode.GENERATION_EXHAUSTED


class ConcurrentModificationError(BookingError):
    """Optimistic concurrency retries ran out."""

    default_code = ErrorCode.CONCURRENT_MODIFICATION


class TransientExternalError(BookingError):
    """Gateway or notification timeout/failure; retryable."""

    default_code = ErrorCode.GATEWAY_UNAVAILABLE


class DuplicateEventError(BookingError):
    """A webhook event that was already applied. Handled as a no-op."""

    default_code = ErrorCode.DUPLICATE_EVENT
