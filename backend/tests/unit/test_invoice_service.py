"""Unit tests for InvoiceService."""

from datetime import datetime, timezone
from typing import Callable
from unittest.mock import MagicMock, patch

import pytest

from booking_core.config import Settings
from booking_core.models.booking import BookingRequest
from booking_core.models.enums import InvoiceStatus, InvoiceType, PaymentType
from booking_core.models.errors import ConcurrentModificationError, NotFoundError
from booking_core.models.order import Order
from booking_core.services.booking_service import BookingService
from booking_core.services.dynamodb import DynamoDBService, to_item
from booking_core.services.invoice_service import InvoiceService, invoice_amount, invoice_type_for

PAID_AT = datetime(2026, 6, 2, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def service(db: DynamoDBService, settings: Settings, clock) -> InvoiceService:
    return InvoiceService(db, settings=settings, clock=clock)


@pytest.fixture
def order(db: DynamoDBService, catalog: None, settings: Settings, clock, booking_request: Callable[..., BookingRequest]) -> Order:
    order_id = BookingService(db, settings=settings, clock=clock).create_booking(booking_request()).order_id
    return Order.model_validate(db.get_item("orders", {"order_id": order_id}))


def _deposit_paid(order: Order) -> Order:
    return order.model_copy(update={"pricing": order.pricing.model_copy(update={"deposit_paid_at": PAID_AT})})


class TestInvoiceKinds:
    def test_deposit(self, order: Order) -> None:
        assert invoice_type_for(order, PaymentType.DEPOSIT) == InvoiceType.DEPOSIT
        assert invoice_amount(order, PaymentType.DEPOSIT) == 135000

    def test_final_after_deposit(self, order: Order) -> None:
        paid = _deposit_paid(order)
        assert invoice_type_for(paid, PaymentType.FULL_PAYMENT) == InvoiceType.FINAL
        assert invoice_amount(paid, PaymentType.FULL_PAYMENT) == 315000

    def test_full_without_deposit(self, order: Order) -> None:
        assert invoice_type_for(order, PaymentType.FULL_PAYMENT) == InvoiceType.FULL
        assert invoice_amount(order, PaymentType.FULL_PAYMENT) == 450000


class TestBuildInvoice:
    def test_deposit_invoice_fields(self, service: InvoiceService, order: Order) -> None:
        invoice = service.build_invoice(order, PaymentType.DEPOSIT, "PP-INV-2026-001", PAID_AT)

        assert invoice.status == InvoiceStatus.PAID
        assert invoice.total == 135000
        assert invoice.issue_date.isoformat() == "2026-06-02"
        assert invoice.due_date.isoformat() == "2026-06-16"
        (item,) = invoice.items
        assert item.description == "Záloha (30%) - Dětská oslava"
        assert item.unit_price == item.total == 135000

    def test_final_invoice_description(self, service: InvoiceService, order: Order) -> None:
        invoice = service.build_invoice(_deposit_paid(order), PaymentType.FULL_PAYMENT, "PP-INV-2026-002", PAID_AT)
        assert invoice.items[0].description.startswith("Doplatek (70%)")


class TestCreateInvoiceFromOrder:
    def test_numbers_are_sequential(self, service: InvoiceService, order: Order) -> None:
        first = service.create_invoice_from_order(order.order_id, PaymentType.DEPOSIT)
        second = service.create_invoice_from_order(order.order_id, PaymentType.FULL_PAYMENT)

        assert first.invoice_number == "PP-INV-2026-001"
        assert second.invoice_number == "PP-INV-2026-002"
        assert first.items[0].description == "Záloha (30%) - Oslava Anička"
        stored = service.get_invoices_for_order(order.order_id)
        assert [i.invoice_number for i in stored] == ["PP-INV-2026-001", "PP-INV-2026-002"]

    def test_listing_orders_by_year_then_sequence(
        self, service: InvoiceService, db: DynamoDBService, order: Order
    ) -> None:
        for number in ("PP-INV-2026-1000", "PP-INV-2025-1200", "PP-INV-2026-999"):
            invoice = service.build_invoice(order, PaymentType.DEPOSIT, number, PAID_AT)
            db.put_item("invoices", to_item(invoice))

        stored = service.get_invoices_for_order(order.order_id)

        assert [i.invoice_number for i in stored] == [
            "PP-INV-2025-1200",
            "PP-INV-2026-999",
            "PP-INV-2026-1000",
        ]

    def test_get_invoice(self, service: InvoiceService, order: Order) -> None:
        created = service.create_invoice_from_order(order.order_id, PaymentType.DEPOSIT)
        assert service.get_invoice(created.invoice_id) == created

    def test_unknown_order(self, service: InvoiceService, db: DynamoDBService) -> None:
        with pytest.raises(NotFoundError):
            service.create_invoice_from_order("missing", PaymentType.DEPOSIT)

    def test_unknown_invoice(self, service: InvoiceService, db: DynamoDBService) -> None:
        with pytest.raises(NotFoundError):
            service.get_invoice("missing")

    def test_counter_conflict_exhausts(self, service: InvoiceService, db: DynamoDBService, order: Order) -> None:
        with patch.object(db, "transact_write", return_value=False):
            with pytest.raises(ConcurrentModificationError):
                service.create_invoice_from_order(order.order_id, PaymentType.DEPOSIT)


class TestPdf:
    def test_no_renderer(self, service: InvoiceService, order: Order) -> None:
        invoice = service.build_invoice(order, PaymentType.DEPOSIT, "PP-INV-2026-001", PAID_AT)
        assert service.generate_pdf(invoice) is None

    def test_renderer_used(self, db: DynamoDBService, settings: Settings, order: Order) -> None:
        renderer = MagicMock()
        renderer.render.return_value = b"%PDF"
        service = InvoiceService(db, settings=settings, renderer=renderer)
        invoice = service.build_invoice(order, PaymentType.DEPOSIT, "PP-INV-2026-001", PAID_AT)

        assert service.generate_pdf(invoice) == b"%PDF"
        renderer.render.assert_called_once_with(invoice)
