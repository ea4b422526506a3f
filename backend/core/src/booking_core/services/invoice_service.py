"""Invoice generation for confirmed payments.

Invoices are normally created by the webhook reconciler inside its own
transaction (``prepare_invoice``). ``create_invoice_from_order`` is the
standalone entry point used for manual reconciliation.
"""

import uuid
from datetime import datetime, timedelta
from typing import Any, Protocol

from boto3.dynamodb.conditions import Key

from booking_core.config import Settings, get_settings
from booking_core.models.enums import InvoiceStatus, InvoiceType, PaymentType
from booking_core.models.errors import ConcurrentModificationError, NotFoundError
from booking_core.models.invoice import Invoice, InvoiceItem
from booking_core.models.order import Order
from booking_core.models.party import Party
from booking_core.utils.dates import Clock, local_date, utc_now
from booking_core.utils.logging import get_logger

from .dynamodb import DynamoDBService, to_item
from .numbering import InvoiceNumberGenerator, invoice_number_key
from .tables import INVOICE_ORDER_INDEX, INVOICES, ORDERS, PARTIES

logger = get_logger(__name__)


class InvoicePdfRenderer(Protocol):
    """Renders an invoice to PDF bytes."""

    def render(self, invoice: Invoice) -> bytes: ...


def party_label(party: Party | None) -> str:
    """Short party name used on invoice lines."""
    if party is None:
        return "Dětská oslava"
    return f"Oslava {party.child_name}"


def invoice_type_for(order: Order, payment_type: PaymentType) -> InvoiceType:
    if payment_type == PaymentType.DEPOSIT:
        return InvoiceType.DEPOSIT
    if order.pricing.deposit_paid_at is None:
        return InvoiceType.FULL
    return InvoiceType.FINAL


def invoice_amount(order: Order, payment_type: PaymentType) -> int:
    """Amount billed by the invoice for a payment on this order."""
    if payment_type == PaymentType.DEPOSIT:
        return order.pricing.deposit
    if order.pricing.deposit_paid_at is None:
        return order.pricing.total
    return order.pricing.balance


class InvoiceService:
    """Builds and stores invoices."""

    def __init__(
        self,
        db: DynamoDBService,
        settings: Settings | None = None,
        clock: Clock = utc_now,
        renderer: InvoicePdfRenderer | None = None,
        max_attempts: int | None = None,
    ) -> None:
        self._db = db
        self._settings = settings or get_settings()
        self._clock = clock
        self._renderer = renderer
        self._numbers = InvoiceNumberGenerator(db)
        self._max_attempts = max_attempts or self._settings.reconcile_max_attempts

    def build_invoice(
        self,
        order: Order,
        payment_type: PaymentType,
        invoice_number: str,
        paid_at: datetime,
        party: Party | None = None,
    ) -> Invoice:
        """Build the invoice document for a payment.

        The order is expected to already reflect the payment (deposit amount
        and ``deposit_paid_at`` set for a deposit).
        """
        issue_date = local_date(paid_at, self._settings.business_timezone)
        amount = invoice_amount(order, payment_type)
        invoice_type = invoice_type_for(order, payment_type)
        label = party_label(party)
        percent = order.pricing.deposit_percent

        if invoice_type == InvoiceType.DEPOSIT:
            description = f"Záloha ({percent}%) - {label}"
        elif invoice_type == InvoiceType.FINAL:
            description = f"Doplatek ({100 - percent}%) - {label}"
        else:
            description = f"Úhrada - {label}"

        return Invoice(
            invoice_id=str(uuid.uuid4()),
            invoice_number=invoice_number,
            order_id=order.order_id,
            customer_id=order.customer_id,
            type=invoice_type,
            status=InvoiceStatus.PAID,
            currency=order.pricing.currency,
            total=amount,
            items=[
                InvoiceItem(description=description, quantity=1, unit_price=amount, total=amount)
            ],
            issue_date=issue_date,
            due_date=issue_date + timedelta(days=self._settings.invoice_due_days),
            paid_at=paid_at,
            created_at=paid_at,
            updated_at=paid_at,
        )

    def prepare_invoice(
        self,
        order: Order,
        payment_type: PaymentType,
        paid_at: datetime,
        party: Party | None = None,
    ) -> tuple[Invoice, list[dict[str, Any]]]:
        """Build an invoice and the transaction items that persist it.

        The items reserve the next invoice number and insert the invoice;
        they must be committed together in one transaction.

        Returns:
            Tuple of (invoice, transaction items)
        """
        year = local_date(paid_at, self._settings.business_timezone).year
        invoice_number, counter_item = self._numbers.reserve(year)
        invoice = self.build_invoice(order, payment_type, invoice_number, paid_at, party)
        put_item = self._db.tx_put(
            INVOICES,
            to_item(invoice),
            condition_expression="attribute_not_exists(invoice_id)",
        )
        return invoice, [counter_item, put_item]

    def create_invoice_from_order(self, order_id: str, payment_type: PaymentType) -> Invoice:
        """Create and store an invoice for an order payment.

        Args:
            order_id: Order to invoice
            payment_type: Which installment the invoice covers

        Returns:
            The stored invoice

        Raises:
            NotFoundError: If the order does not exist.
            ConcurrentModificationError: If the invoice counter kept changing.
        """
        item = self._db.get_item(ORDERS, {"order_id": order_id})
        if not item:
            raise NotFoundError(details={"order_id": order_id})
        order = Order.model_validate(item)

        party = None
        if order.party_id:
            party_item = self._db.get_item(PARTIES, {"party_id": order.party_id})
            party = Party.model_validate(party_item) if party_item else None

        paid_at = self._clock()
        for attempt in range(1, self._max_attempts + 1):
            invoice, items = self.prepare_invoice(order, payment_type, paid_at, party)
            if self._db.transact_write(items):
                logger.info(
                    "Invoice %s created for order %s (%s)",
                    invoice.invoice_number,
                    order_id,
                    payment_type.value,
                )
                return invoice
            logger.warning(
                "Invoice number conflict for order %s (attempt %d)", order_id, attempt
            )
        raise ConcurrentModificationError(details={"order_id": order_id})

    def get_invoices_for_order(self, order_id: str) -> list[Invoice]:
        """All invoices issued for an order, oldest number first."""
        items = self._db.query(
            INVOICES, Key("order_id").eq(order_id), index_name=INVOICE_ORDER_INDEX
        )
        invoices = [Invoice.model_validate(i) for i in items]
        return sorted(invoices, key=lambda inv: invoice_number_key(inv.invoice_number))

    def get_invoice(self, invoice_id: str) -> Invoice:
        item = self._db.get_item(INVOICES, {"invoice_id": invoice_id})
        if not item:
            raise NotFoundError(message="Invoice not found", details={"invoice_id": invoice_id})
        return Invoice.model_validate(item)

    def generate_pdf(self, invoice: Invoice) -> bytes | None:
        """Render the invoice PDF, or None when no renderer is configured."""
        if self._renderer is None:
            return None
        return self._renderer.render(invoice)
