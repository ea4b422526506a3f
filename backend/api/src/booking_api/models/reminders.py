"""API models for the reminder cron endpoint."""

from pydantic import BaseModel, Field

from booking_core.models.reminders import ScanResult


class ReminderRunResponse(BaseModel):
    """Per-scan counts from one cron run."""

    success: bool = True
    results: dict[str, ScanResult] = Field(
        ...,
        description="Counts keyed by scan name",
        examples=[
            {
                "party_reminder": {"sent": 2, "skipped": 0, "errors": 0},
                "feedback_request": {"sent": 1, "skipped": 0, "errors": 0},
                "payment_due": {"sent": 0, "skipped": 1, "errors": 0},
            }
        ],
    )
