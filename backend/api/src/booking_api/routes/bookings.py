"""Booking endpoints.

Provides REST endpoints for:
- Creating a booking from the public booking form (no authentication)
"""

from fastapi import APIRouter, Depends
from starlette.status import HTTP_201_CREATED

from booking_api.dependencies import get_booking_service
from booking_api.models.bookings import BookingResponse
from booking_core.models.booking import BookingRequest
from booking_core.models.errors import ErrorResponse
from booking_core.services.booking_service import BookingService

router = APIRouter(tags=["bookings"])


@router.post(
    "/bookings",
    summary="Create booking",
    description="""
Create a party booking from the booking form.

Creates (or reuses) the customer for the parent's email, the party in
`inquiry` status, the order in `new` status and the safety checklist, all
in one transaction. A confirmation email is sent afterwards; a failed
email does not fail the booking.

**Pricing:** a package, or at least one activity, is required. When both
are given the package price is used.
""",
    response_model=BookingResponse,
    status_code=HTTP_201_CREATED,
    responses={
        201: {"description": "Booking created"},
        400: {"description": "Missing fields or unknown package", "model": ErrorResponse},
        500: {"description": "Could not allocate an order number", "model": ErrorResponse},
    },
)
async def create_booking(
    body: BookingRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Create a booking and return its identifiers."""
    result = service.create_booking(body)
    return BookingResponse.from_result(result)
