"""Pydantic models for the party booking engine."""

from .booking import BookingRequest, BookingResult, ChildInfo, ContactInfo, PartyDetails
from .customer import Customer, normalize_email, split_name
from .enums import (
    PARTY_TERMINAL_STATUSES,
    InvoiceStatus,
    InvoiceType,
    NotificationOutcome,
    OrderItemKind,
    OrderStatus,
    PartyStatus,
    PaymentType,
    ProcessingResult,
)
from .errors import (
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    BookingError,
    BookingValidationError,
    ConcurrentModificationError,
    DuplicateEventError,
    ErrorCode,
    ErrorResponse,
    GenerationExhausted,
    InvalidStateError,
    NotFoundError,
    TransientExternalError,
)
from .invoice import Invoice, InvoiceItem
from .order import Order, OrderItem, Pricing
from .party import EmergencyContact, Party
from .reminders import ScanResult
from .safety import SafetyChecklist
from .stripe_webhook import (
    ChargeObject,
    CheckoutSessionObject,
    EventMetadata,
    PaymentIntentObject,
    StripeWebhookEvent,
    WebhookOutcome,
)

__all__ = [
    # Enums
    "PARTY_TERMINAL_STATUSES",
    "InvoiceStatus",
    "InvoiceType",
    "NotificationOutcome",
    "OrderItemKind",
    "OrderStatus",
    "PartyStatus",
    "PaymentType",
    "ProcessingResult",
    # Errors
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "BookingError",
    "BookingValidationError",
    "ConcurrentModificationError",
    "DuplicateEventError",
    "ErrorCode",
    "ErrorResponse",
    "GenerationExhausted",
    "InvalidStateError",
    "NotFoundError",
    "TransientExternalError",
    # Entities
    "Customer",
    "EmergencyContact",
    "Invoice",
    "InvoiceItem",
    "Order",
    "OrderItem",
    "Party",
    "Pricing",
    "SafetyChecklist",
    "normalize_email",
    "split_name",
    # Booking
    "BookingRequest",
    "BookingResult",
    "ChildInfo",
    "ContactInfo",
    "PartyDetails",
    # Webhooks
    "ChargeObject",
    "CheckoutSessionObject",
    "EventMetadata",
    "PaymentIntentObject",
    "StripeWebhookEvent",
    "WebhookOutcome",
    # Reminders
    "ScanResult",
]
