"""API models for webhook endpoints."""

from pydantic import BaseModel

from booking_core.models.stripe_webhook import WebhookOutcome


class WebhookResponse(BaseModel):
    """Standard webhook response."""

    received: bool
    event_id: str | None = None
    event_type: str | None = None
    processing_result: str  # "applied", "duplicate", "skipped", "deferred", "logged"
    message: str | None = None

    @classmethod
    def from_outcome(cls, outcome: WebhookOutcome) -> "WebhookResponse":
        return cls(
            received=True,
            event_id=outcome.event_id,
            event_type=outcome.event_type,
            processing_result=outcome.result.value,
            message=outcome.message,
        )
