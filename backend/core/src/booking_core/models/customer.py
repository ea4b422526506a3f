"""Customer model: the paying party, keyed by email."""

from datetime import date, datetime

from pydantic import BaseModel, Field


class Customer(BaseModel):
    """A customer resolved from booking contact details.

    Amounts are stored in minor currency units.
    """

    customer_id: str = Field(..., description="Unique customer ID")
    email: str = Field(..., description="Lower-cased email, natural key")
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(default="")
    phone: str | None = Field(default=None)
    total_booked: int = Field(default=0, ge=0, description="Number of bookings made")
    total_spent: int = Field(default=0, ge=0, description="Sum of booked totals")
    last_event_date: date | None = Field(default=None)
    created_at: datetime
    updated_at: datetime


def normalize_email(email: str) -> str:
    """Normalize an email address for use as the customer key."""
    return email.strip().lower()


def split_name(full_name: str) -> tuple[str, str]:
    """Split a full name into (first, last) on the first space.

    Args:
        full_name: Name as entered on the booking form

    Returns:
        Tuple of first name and the remainder (may be empty)
    """
    parts = full_name.strip().split(" ", 1)
    first = parts[0]
    last = parts[1].strip() if len(parts) > 1 else ""
    return first, last
