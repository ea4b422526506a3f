"""API models for payment endpoints.

Amounts are derived from the order, never from user input.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from booking_core.models.enums import PaymentType
from booking_core.services.payment_session import CheckoutSession


class CheckoutRequest(BaseModel):
    """Request to open a Stripe Checkout session for an order."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {"orderId": "0b6c5d1e-8f2a-4c3b-9d7e-1a2b3c4d5e6f", "type": "deposit"}
            ]
        },
    )

    order_id: str = Field(..., min_length=1, description="Order to pay for")
    type: PaymentType = Field(
        default=PaymentType.DEPOSIT,
        description="Which installment to collect (deposit, full_payment)",
    )


class CheckoutResponse(BaseModel):
    """Hosted checkout page to redirect the customer to."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    url: str = Field(..., description="Stripe Checkout URL")
    amount: int = Field(..., description="Amount in minor currency units")
    type: PaymentType
    expires_at: datetime

    @classmethod
    def from_session(cls, session: CheckoutSession) -> "CheckoutResponse":
        return cls(
            session_id=session.session_id,
            url=session.checkout_url,
            amount=session.amount,
            type=session.payment_type,
            expires_at=session.expires_at,
        )
