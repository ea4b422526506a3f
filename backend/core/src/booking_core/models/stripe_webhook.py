"""Stripe webhook models: the event log row and typed event payloads."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import PaymentType, ProcessingResult


class StripeWebhookEvent(BaseModel):
    """Log of a received Stripe webhook event.

    Used for:
    - Idempotency: the row is written in the same transaction as the
      order mutation, so an event is applied at most once
    - Deferral: events that arrived before the order was ready keep their
      payload for reprocessing
    - Auditing: track all webhook deliveries
    """

    event_id: str = Field(
        ...,
        description="Stripe event ID (evt_xxx)",
        examples=["evt_1ABC123DEF456"],
    )
    event_type: str = Field(
        ...,
        description="Stripe event type",
        examples=["checkout.session.completed", "charge.refunded"],
    )
    processed_at: datetime = Field(..., description="When the event was processed")
    payload_hash: str = Field(..., description="SHA-256 hash of payload")
    order_id: str | None = Field(default=None, description="Order ID from metadata")
    payment_type: PaymentType | None = Field(default=None)
    processing_result: ProcessingResult = Field(default=ProcessingResult.APPLIED)
    error_message: str | None = Field(default=None)
    payload: str | None = Field(
        default=None, description="Raw event JSON, kept for deferred events"
    )


class EventMetadata(BaseModel):
    """Correlation metadata set when the checkout session was created."""

    model_config = ConfigDict(extra="ignore")

    order_id: str | None = Field(default=None, alias="orderId")
    type: PaymentType | None = None


class CheckoutSessionObject(BaseModel):
    """The ``data.object`` of a ``checkout.session.*`` event."""

    model_config = ConfigDict(extra="ignore")

    id: str
    payment_intent: str | None = None
    payment_status: str | None = None
    amount_total: int | None = None
    metadata: EventMetadata = Field(default_factory=EventMetadata)


class ChargeObject(BaseModel):
    """The ``data.object`` of a ``charge.refunded`` event."""

    model_config = ConfigDict(extra="ignore")

    id: str
    payment_intent: str | None = None
    amount: int = 0
    amount_refunded: int = 0
    metadata: EventMetadata = Field(default_factory=EventMetadata)


class PaymentIntentObject(BaseModel):
    """The ``data.object`` of a ``payment_intent.*`` event."""

    model_config = ConfigDict(extra="ignore")

    id: str
    amount: int | None = None
    last_payment_error: dict[str, Any] | None = None
    metadata: EventMetadata = Field(default_factory=EventMetadata)


class WebhookOutcome(BaseModel):
    """Result returned to the webhook route."""

    event_id: str
    event_type: str
    result: ProcessingResult
    order_id: str | None = None
    message: str | None = None
