"""Payment endpoints.

Provides REST endpoints for:
- Opening a Stripe Checkout session for the deposit or the balance

Opening a session never changes the order; the Stripe webhook does.
"""

from fastapi import APIRouter, Depends
from starlette.status import HTTP_201_CREATED

from booking_api.dependencies import get_payment_session_service
from booking_api.models.payments import CheckoutRequest, CheckoutResponse
from booking_core.models.errors import ErrorResponse
from booking_core.services.payment_session import PaymentSessionService

router = APIRouter(tags=["payments"])


@router.post(
    "/payments/checkout",
    summary="Create checkout session",
    description="""
Open a Stripe Checkout session for an order installment.

- `deposit`: order must be `new`; amount is the order deposit.
- `full_payment`: order must be `confirmed` with the deposit paid; amount
  is the remaining balance.

Repeating the request within the session lifetime returns the same session.
""",
    response_model=CheckoutResponse,
    status_code=HTTP_201_CREATED,
    responses={
        201: {"description": "Checkout session created"},
        404: {"description": "Order not found", "model": ErrorResponse},
        409: {"description": "Order status does not allow this payment", "model": ErrorResponse},
        503: {"description": "Stripe unavailable", "model": ErrorResponse},
    },
)
async def create_checkout_session(
    body: CheckoutRequest,
    service: PaymentSessionService = Depends(get_payment_session_service),
) -> CheckoutResponse:
    """Open a checkout session and return the redirect URL."""
    session = service.start(body.order_id, body.type)
    return CheckoutResponse.from_session(session)
