"""Enumeration types for booking data models."""

from enum import Enum


class PartyStatus(str, Enum):
    """Lifecycle of the scheduled event."""

    INQUIRY = "inquiry"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderStatus(str, Enum):
    """Lifecycle of the commercial transaction."""

    NEW = "new"
    CONFIRMED = "confirmed"  # Deposit received
    COMPLETED = "completed"  # Balance received
    CANCELLED = "cancelled"


class PaymentType(str, Enum):
    """Installment being collected through a checkout session."""

    DEPOSIT = "deposit"
    FULL_PAYMENT = "full_payment"


class InvoiceType(str, Enum):
    """Kind of billing document."""

    DEPOSIT = "deposit"
    FINAL = "final"
    FULL = "full"


class InvoiceStatus(str, Enum):
    """Status of an invoice."""

    ISSUED = "issued"
    PAID = "paid"
    VOID = "void"


class OrderItemKind(str, Enum):
    """Pricing source of an order line."""

    PACKAGE = "package"
    ACTIVITY = "activity"


class ProcessingResult(str, Enum):
    """Outcome of processing a single webhook event."""

    APPLIED = "applied"
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"
    DEFERRED = "deferred"
    LOGGED = "logged"


class NotificationOutcome(str, Enum):
    """Result of a best-effort notification send."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


PARTY_TERMINAL_STATUSES = frozenset({PartyStatus.COMPLETED, PartyStatus.CANCELLED})
