"""Party model: the scheduled real-world event."""

from datetime import date, datetime

from pydantic import BaseModel, Field

from .enums import PARTY_TERMINAL_STATUSES, PartyStatus


class EmergencyContact(BaseModel):
    """Person to call during the event if the parent is unreachable."""

    name: str
    phone: str


class Party(BaseModel):
    """A booked children's party.

    Only ``status``, ``reminder_sent_at`` and ``feedback_sent_at`` change
    after creation.
    """

    party_id: str = Field(..., description="Unique party ID")
    customer_id: str
    order_id: str
    event_at: datetime = Field(..., description="Start of the event in UTC")
    event_date: date = Field(..., description="Local calendar date of the event")
    start_time: str = Field(..., description="Local start time (HH:MM)")
    venue: str
    guest_count: int = Field(..., ge=1)
    special_requests: str | None = None

    # Child
    child_name: str
    child_age: int | None = Field(default=None, ge=0)
    child_gender: str | None = None
    interests: str | None = None
    allergies: list[str] = Field(default_factory=list)
    dietary_restrictions: list[str] = Field(default_factory=list)
    special_needs: str | None = None

    # Contact
    parent_name: str
    parent_email: str
    parent_phone: str
    emergency_contact: EmergencyContact | None = None

    package_id: str | None = None
    activity_ids: list[str] = Field(default_factory=list)

    status: PartyStatus = PartyStatus.INQUIRY
    reminder_sent_at: datetime | None = None
    feedback_sent_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def is_terminal(self) -> bool:
        return self.status in PARTY_TERMINAL_STATUSES
