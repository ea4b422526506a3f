"""Cron trigger for the reminder scans.

Called by a scheduled EventBridge rule (or any external cron) with
``Authorization: Bearer <secret>``. The secret is read from SSM
(``/booking/{env}/cron/secret``), falling back to the ``CRON_SECRET``
environment variable.
"""

import hmac
import os

from fastapi import APIRouter, Depends, Request

from booking_api.dependencies import get_reminder_scheduler, get_secrets
from booking_api.models.reminders import ReminderRunResponse
from booking_core.models.errors import BookingError, ErrorCode, ErrorResponse
from booking_core.services.reminder_scheduler import ReminderScheduler
from booking_core.services.ssm_service import SSMService
from booking_core.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["cron"])

CRON_SECRET_PARAMETER = "cron/secret"
CRON_SECRET_ENV = "CRON_SECRET"
BEARER_PREFIX = "Bearer "


def _cron_secret(ssm: SSMService) -> str | None:
    return ssm.find_secret(CRON_SECRET_PARAMETER) or os.environ.get(CRON_SECRET_ENV) or None


def require_cron_token(request: Request, ssm: SSMService = Depends(get_secrets)) -> None:
    """Reject the request unless it carries the configured bearer token.

    Raises:
        BookingError: CRON_NOT_CONFIGURED (500) when no secret is set,
            UNAUTHORIZED (401) when the token is missing or wrong.
    """
    secret = _cron_secret(ssm)
    if not secret:
        logger.error("Cron endpoint called but no cron secret is configured")
        raise BookingError(code=ErrorCode.CRON_NOT_CONFIGURED)

    header = request.headers.get("Authorization", "")
    token = header[len(BEARER_PREFIX):] if header.startswith(BEARER_PREFIX) else ""
    if not token or not hmac.compare_digest(token.encode(), secret.encode()):
        logger.warning("Cron endpoint called with missing or invalid token")
        raise BookingError(code=ErrorCode.UNAUTHORIZED)


@router.api_route(
    "/cron/reminders",
    methods=["GET", "POST"],
    summary="Run reminder scans",
    description="""
Runs the party reminder, post-event feedback and payment-due scans.

Each record is notified at most once; failed sends are retried on the
next run.
""",
    response_model=ReminderRunResponse,
    dependencies=[Depends(require_cron_token)],
    responses={
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        500: {"description": "Cron secret not configured", "model": ErrorResponse},
        503: {"description": "Datastore unavailable", "model": ErrorResponse},
    },
)
async def run_reminders(
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
) -> ReminderRunResponse:
    """Run every reminder scan and return the counts."""
    return ReminderRunResponse(results=scheduler.run_all())
