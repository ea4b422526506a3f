"""API-specific request/response models.

Domain models (BookingRequest, Order, Invoice, etc.) live in
``booking_core.models`` and are reused here where appropriate.

Modules:
- bookings: Booking creation response
- payments: Checkout session request/response
- webhooks: Webhook acknowledgement
- reminders: Cron run summary
"""

from booking_api.models.bookings import BookingResponse
from booking_api.models.payments import CheckoutRequest, CheckoutResponse
from booking_api.models.reminders import ReminderRunResponse
from booking_api.models.webhooks import WebhookResponse

__all__ = [
    "BookingResponse",
    "CheckoutRequest",
    "CheckoutResponse",
    "ReminderRunResponse",
    "WebhookResponse",
]
