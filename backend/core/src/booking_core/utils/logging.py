"""Logging setup and structured log helpers.

Every record carries the correlation ID of the request (or cron run) that
produced it. The ID lives in a ContextVar set by ``CorrelationIdMiddleware``
and is stamped onto records by ``CorrelationIdFilter``.

The ``log_*`` helpers write one line per domain event as
``headline | key=value | ...`` and pass the same fields in ``extra`` so a
JSON log shipper can index them.

Usage:
    logger = get_logger(__name__)
    log_payment_operation(logger, "refund", order_id=order_id, amount=450000)
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
NO_CORRELATION_ID = "-"

_WARNING_RESULTS = frozenset({"duplicate", "skipped", "deferred"})


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation ID to the current context, generating one if absent."""
    value = correlation_id or uuid.uuid4().hex
    _correlation_id.set(value)
    return value


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Adds ``correlation_id`` to every record passing through."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class StructuredFormatter(logging.Formatter):
    """Prefixes each line with ``[correlation_id]``."""

    def format(self, record: logging.LogRecord) -> str:
        correlation_id = getattr(record, "correlation_id", None) or get_correlation_id()
        return f"[{correlation_id or NO_CORRELATION_ID}] {super().format(record)}"


def configure_logging(level: str = "INFO") -> None:
    """Install the structured formatter on the root logger.

    Calling it again only updates the level and formatter.
    """
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    root.setLevel(level)
    for handler in root.handlers:
        handler.setFormatter(StructuredFormatter(LOG_FORMAT))


def get_logger(name: str) -> logging.Logger:
    """Return the named logger with the correlation filter attached once."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())
    return logger


def _emit(logger: logging.Logger, level: int, headline: str, fields: dict[str, Any]) -> None:
    """Write ``headline | k=v | ...``, skipping unset fields."""
    context = {key: value for key, value in fields.items() if value is not None}
    parts = [headline, *(f"{key}={value}" for key, value in context.items())]
    logger.log(level, " | ".join(parts), extra=context)


def log_payment_operation(
    logger: logging.Logger,
    operation: str,
    *,
    order_id: str | None = None,
    payment_type: str | None = None,
    amount: int | None = None,
    status: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log a payment step (session creation, refund, failure).

    Logged at ERROR when ``error`` is set, INFO otherwise.

    Args:
        logger: Logger to write to
        operation: Step name, e.g. ``create_checkout_session``
        order_id: Order the payment belongs to
        payment_type: ``deposit`` or ``full_payment``
        amount: Amount in minor units
        status: Order status after the step
        error: Failure description
        **extra: Further fields, e.g. ``session_id``
    """
    fields = {
        "order_id": order_id,
        "payment_type": payment_type,
        "amount": amount,
        "status": status,
        "error": error,
        **extra,
    }
    level = logging.ERROR if error else logging.INFO
    _emit(logger, level, f"Payment operation: {operation}", fields)


def log_webhook_event(
    logger: logging.Logger,
    event_type: str,
    event_id: str,
    *,
    order_id: str | None = None,
    result: str | None = None,
    error: str | None = None,
) -> None:
    """Log how a Stripe event was handled.

    Events that were not applied (duplicate, skipped, deferred) are logged
    at WARNING so they show up in manual reconciliation searches.
    """
    level = logging.WARNING if result in _WARNING_RESULTS else logging.INFO
    _emit(
        logger,
        level,
        f"Webhook event: {event_type} ({event_id})",
        {"result": result, "order_id": order_id, "error": error},
    )


def log_scan_result(logger: logging.Logger, scan: str, *, sent: int, skipped: int, errors: int) -> None:
    """Log the counts of one reminder scan."""
    level = logging.WARNING if errors else logging.INFO
    _emit(
        logger,
        level,
        f"Reminder scan: {scan}",
        {"sent": sent, "skipped": skipped, "errors": errors},
    )
