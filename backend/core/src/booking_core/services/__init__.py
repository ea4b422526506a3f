"""Services for the party booking engine."""

from .booking_service import BookingService
from .catalog import CatalogService
from .dynamodb import DynamoDBService, get_dynamodb_service, reset_dynamodb_service
from .invoice_service import InvoicePdfRenderer, InvoiceService
from .notification_service import (
    NotificationError,
    NotificationService,
    get_notification_service,
)
from .payment_session import CheckoutSession, PaymentSessionService
from .reminder_scheduler import ReminderScheduler
from .ssm_service import SSMService, SSMServiceError, get_ssm_service
from .stripe_service import (
    StripeService,
    StripeServiceError,
    WebhookSignatureError,
    get_stripe_service,
)
from .webhook_handler import WebhookHandler

__all__ = [
    "DynamoDBService",
    "get_dynamodb_service",
    "reset_dynamodb_service",
    "BookingService",
    "CatalogService",
    "CheckoutSession",
    "PaymentSessionService",
    "InvoicePdfRenderer",
    "InvoiceService",
    "NotificationError",
    "NotificationService",
    "get_notification_service",
    "ReminderScheduler",
    "SSMService",
    "SSMServiceError",
    "get_ssm_service",
    "StripeService",
    "StripeServiceError",
    "WebhookSignatureError",
    "get_stripe_service",
    "WebhookHandler",
]
