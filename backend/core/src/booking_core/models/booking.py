"""Booking request and result models.

Request bodies use camelCase on the wire (``partyDetails``, ``childInfo``);
both aliases and field names are accepted.
"""

import datetime as dt

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from .enums import NotificationOutcome
from .party import EmergencyContact


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PartyDetails(_CamelModel):
    """When and where the party happens."""

    date: dt.date
    start_time: str = Field(..., pattern=r"^([01]\d|2[0-3]):[0-5]\d$", examples=["14:00"])
    venue: str = Field(..., min_length=1)
    guest_count: int = Field(..., ge=1)
    special_requests: str | None = None


class ChildInfo(_CamelModel):
    """The child the party is for."""

    name: str = Field(..., min_length=1)
    age: int | None = Field(default=None, ge=0, le=18)
    gender: str | None = None
    interests: str | None = None
    allergies: list[str] = Field(default_factory=list)
    dietary_restrictions: list[str] = Field(default_factory=list)
    special_needs: str | None = None


class ContactInfo(_CamelModel):
    """Parent contact details."""

    parent_name: str = Field(..., min_length=1)
    parent_email: EmailStr
    parent_phone: str = Field(..., min_length=1)
    emergency_contact: EmergencyContact | None = None


class BookingRequest(_CamelModel):
    """Booking form submission.

    The three sections are optional at the type level so that a missing
    section is reported with the booking-specific message rather than a
    generic schema error.
    """

    package_id: str | None = None
    activity_ids: list[str] = Field(default_factory=list)
    party_details: PartyDetails | None = None
    child_info: ChildInfo | None = None
    contact: ContactInfo | None = None
    safety_acknowledged: bool = False

    @field_validator("activity_ids", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return [] if value is None else value


class BookingResult(BaseModel):
    """Outcome of a successful booking.

    ``notification`` reports the confirmation email separately; the booking
    is committed whatever its value.
    """

    order_id: str
    order_number: str
    party_id: str
    customer_id: str
    total: int
    deposit: int
    notification: NotificationOutcome
