"""FastAPI dependency injection providers for booking services.

Factories are cached with @lru_cache so each Lambda container builds its
clients once.

Usage in routes:
    from booking_api.dependencies import get_booking_service

    @router.post("/bookings")
    async def create_booking(
        body: BookingRequest,
        service: BookingService = Depends(get_booking_service),
    ):
        ...

Service Dependency Graph:
    DynamoDBService (singleton via get_dynamodb_service)
        ├── BookingService ── NotificationService
        ├── PaymentSessionService ── StripeService ── SSMService
        ├── WebhookHandler ── InvoiceService, NotificationService
        └── ReminderScheduler ── NotificationService

Testing:
    Use reset_services() to clear cached instances between tests, or
    override the factories through app.dependency_overrides.
"""

from functools import lru_cache

from booking_core.config import get_settings
from booking_core.services.booking_service import BookingService
from booking_core.services.dynamodb import get_dynamodb_service, reset_dynamodb_service
from booking_core.services.invoice_service import InvoiceService
from booking_core.services.notification_service import get_notification_service
from booking_core.services.payment_session import PaymentSessionService
from booking_core.services.reminder_scheduler import ReminderScheduler
from booking_core.services.ssm_service import SSMService, get_ssm_service
from booking_core.services.stripe_service import StripeService, get_stripe_service
from booking_core.services.webhook_handler import WebhookHandler


def get_secrets() -> SSMService:
    """Get the shared SSMService instance."""
    return get_ssm_service()


def get_gateway() -> StripeService:
    """Get the shared StripeService instance."""
    return get_stripe_service()


@lru_cache
def get_booking_service() -> BookingService:
    """Get cached BookingService instance.

    Returns:
        BookingService configured with DynamoDB and SES.
    """
    return BookingService(db=get_dynamodb_service(), notifier=get_notification_service())


@lru_cache
def get_payment_session_service() -> PaymentSessionService:
    """Get cached PaymentSessionService instance.

    Returns:
        PaymentSessionService configured with DynamoDB and Stripe.
    """
    return PaymentSessionService(db=get_dynamodb_service(), gateway=get_stripe_service())


@lru_cache
def get_invoice_service() -> InvoiceService:
    """Get cached InvoiceService instance."""
    return InvoiceService(db=get_dynamodb_service())


@lru_cache
def get_webhook_handler() -> WebhookHandler:
    """Get cached WebhookHandler instance.

    Returns:
        WebhookHandler configured with invoices and SES.
    """
    return WebhookHandler(
        db=get_dynamodb_service(),
        invoices=get_invoice_service(),
        notifier=get_notification_service(),
    )


@lru_cache
def get_reminder_scheduler() -> ReminderScheduler:
    """Get cached ReminderScheduler instance."""
    return ReminderScheduler(db=get_dynamodb_service(), notifier=get_notification_service())


def reset_services() -> None:
    """Clear all cached service instances.

    Call this in test fixtures to ensure clean state between tests.
    Also resets the underlying DynamoDB singleton and cached settings.

    Example:
        @pytest.fixture(autouse=True)
        def reset_state():
            yield
            reset_services()
    """
    get_booking_service.cache_clear()
    get_payment_session_service.cache_clear()
    get_invoice_service.cache_clear()
    get_webhook_handler.cache_clear()
    get_reminder_scheduler.cache_clear()

    get_stripe_service.cache_clear()
    get_notification_service.cache_clear()
    get_ssm_service.cache_clear()
    get_settings.cache_clear()

    reset_dynamodb_service()
