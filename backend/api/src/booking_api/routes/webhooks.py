"""Webhook endpoints for external service integrations.

Provides endpoints for:
- Stripe webhook events (checkout.session.*, charge.refunded,
  payment_intent.payment_failed)

These endpoints do NOT require authentication as they receive signed
payloads from Stripe.
"""

from fastapi import APIRouter, Depends, Request

from booking_api.dependencies import get_gateway, get_webhook_handler
from booking_api.models.webhooks import WebhookResponse
from booking_core.models.errors import BookingError, ErrorCode, ErrorResponse, TransientExternalError
from booking_core.services.stripe_service import (
    StripeService,
    StripeServiceError,
    WebhookSignatureError,
)
from booking_core.services.webhook_handler import WebhookHandler
from booking_core.utils.logging import get_logger, log_webhook_event

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])

SIGNATURE_HEADER = "Stripe-Signature"


@router.post(
    "/webhooks/stripe",
    summary="Receive Stripe webhook events",
    description="""
Endpoint for Stripe webhook events. Handles:
- checkout.session.completed / async_payment_succeeded: records the deposit
  or balance payment and issues the invoice
- checkout.session.expired: cancels an unpaid order
- charge.refunded: records the refund, cancels the order on a full refund
- payment_intent.payment_failed: logged only

**No authentication required** - signature is verified using the Stripe
webhook secret.

**Idempotent**: Duplicate events (same event_id) return 200 with a
`duplicate` result. Events that cannot be applied yet return `deferred`
and are replayed automatically.
""",
    response_model=WebhookResponse,
    responses={
        200: {"description": "Event received and processed (or acknowledged)"},
        400: {"description": "Invalid signature or missing header", "model": ErrorResponse},
        503: {"description": "Datastore unavailable; Stripe will retry", "model": ErrorResponse},
    },
)
async def handle_stripe_webhook(
    request: Request,
    gateway: StripeService = Depends(get_gateway),
    handler: WebhookHandler = Depends(get_webhook_handler),
) -> WebhookResponse:
    """Verify the signature and hand the event to the reconciler."""
    signature = request.headers.get(SIGNATURE_HEADER)
    if not signature:
        logger.warning("Webhook request missing Stripe-Signature header")
        raise BookingError(
            code=ErrorCode.INVALID_WEBHOOK_SIGNATURE,
            details={"message": "Missing Stripe-Signature header"},
        )

    payload = await request.body()

    try:
        event = gateway.verify_webhook_signature(payload, signature)
    except WebhookSignatureError as e:
        raise BookingError(
            code=ErrorCode.INVALID_WEBHOOK_SIGNATURE,
            details={"message": str(e)},
        ) from e
    except StripeServiceError as e:
        logger.error("Webhook secret unavailable: %s", e)
        raise TransientExternalError() from e

    log_webhook_event(logger, event.get("type", ""), event.get("id", ""), result="received")

    outcome = handler.process_event(event, StripeService.compute_payload_hash(payload))
    return WebhookResponse.from_outcome(outcome)
