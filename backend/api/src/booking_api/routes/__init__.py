"""API routes package.

Routers are organized by domain:

- health: Health check endpoints
- bookings: Booking intake
- payments: Checkout sessions for deposit and balance
- webhooks: Stripe webhook receiver
- cron: Reminder scheduler trigger

All routers are registered in main.py with /api prefix.
"""

from booking_api.routes.bookings import router as bookings_router
from booking_api.routes.cron import router as cron_router
from booking_api.routes.health import router as health_router
from booking_api.routes.payments import router as payments_router
from booking_api.routes.webhooks import router as webhooks_router

__all__ = [
    "bookings_router",
    "cron_router",
    "health_router",
    "payments_router",
    "webhooks_router",
]
