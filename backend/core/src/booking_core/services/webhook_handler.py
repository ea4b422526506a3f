"""Webhook reconciliation: apply Stripe events to orders, parties and invoices.

Business logic for webhook events, separate from HTTP routing so it can be
unit tested and replayed.

Every state change is committed in one DynamoDB transaction together with
the event-log row for the event id, so an event is applied at most once.
The order write is conditioned on the version that was read; a cancelled
transaction is either a duplicate delivery (the marker is there) or a
concurrent change (re-read and retry).

Events that arrive before the order is ready for them (balance paid
before the deposit was recorded, refund on a new order) are stored as
``deferred`` and replayed after the next event applied to that order.
Events for an order that has already moved past them are ``skipped`` and
left for manual reconciliation. Both are acknowledged to Stripe.
"""

import hashlib
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from boto3.dynamodb.conditions import Attr
from pydantic import ValidationError

from booking_core.config import Settings, get_settings
from booking_core.models.enums import (
    InvoiceStatus,
    OrderStatus,
    PartyStatus,
    PaymentType,
    ProcessingResult,
)
from booking_core.models.errors import ConcurrentModificationError, DuplicateEventError
from booking_core.models.invoice import Invoice
from booking_core.models.order import Order
from booking_core.models.party import Party
from booking_core.models.stripe_webhook import (
    ChargeObject,
    CheckoutSessionObject,
    PaymentIntentObject,
    StripeWebhookEvent,
    WebhookOutcome,
)
from booking_core.utils.dates import Clock, utc_now
from booking_core.utils.logging import get_logger, log_payment_operation, log_webhook_event

from . import money
from .dynamodb import DynamoDBService, to_item
from .invoice_service import InvoiceService
from .notification_service import NotificationService, send_best_effort
from .tables import (
    INVOICES,
    ORDER_FINAL_PAYMENT_INTENT_INDEX,
    ORDER_PAYMENT_INTENT_INDEX,
    ORDERS,
    PARTIES,
    WEBHOOK_EVENTS,
    WEBHOOK_ORDER_INDEX,
)

logger = get_logger(__name__)

CHECKOUT_PAID_EVENTS = frozenset(
    {"checkout.session.completed", "checkout.session.async_payment_succeeded"}
)
CHECKOUT_EXPIRED = "checkout.session.expired"
PAYMENT_FAILED = "payment_intent.payment_failed"
CHARGE_REFUNDED = "charge.refunded"

_MARKER_CONDITION = "attribute_not_exists(event_id) OR processing_result = :deferred"


@dataclass
class _Event:
    """A webhook event being processed."""

    event_id: str
    event_type: str
    payload_hash: str
    raw: dict[str, Any]
    order_id: str | None = None
    payment_type: PaymentType | None = None

    @property
    def data_object(self) -> dict[str, Any]:
        obj: dict[str, Any] = self.raw.get("data", {}).get("object", {})
        return obj


@dataclass
class _Decision:
    """Outcome that does not mutate the order."""

    result: ProcessingResult
    message: str


@dataclass
class _Mutation:
    """State change to commit for an event."""

    order: Order
    items: list[dict[str, Any]] = field(default_factory=list)
    invoice: Invoice | None = None
    party: Party | None = None
    payment_type: PaymentType | None = None
    message: str = "applied"


_Planner = Callable[[_Event, Order, datetime], _Decision | _Mutation]


class WebhookHandler:
    """Handler for processing Stripe webhook events.

    Usage:
        handler = WebhookHandler(db, invoices=InvoiceService(db), notifier=notifier)
        outcome = handler.process_event(event)
    """

    def __init__(
        self,
        db: DynamoDBService,
        invoices: InvoiceService | None = None,
        notifier: NotificationService | None = None,
        settings: Settings | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._db = db
        self._settings = settings or get_settings()
        self._clock = clock
        self._invoices = invoices or InvoiceService(db, settings=self._settings, clock=clock)
        self._notifier = notifier
        self._max_attempts = self._settings.reconcile_max_attempts
        self._routes: dict[str, tuple[_Planner, type[CheckoutSessionObject | ChargeObject]]] = {
            **{t: (self._plan_checkout_paid, CheckoutSessionObject) for t in CHECKOUT_PAID_EVENTS},
            CHECKOUT_EXPIRED: (self._plan_checkout_expired, CheckoutSessionObject),
            CHARGE_REFUNDED: (self._plan_refund, ChargeObject),
        }

    # =========================================================================
    # Entry point
    # =========================================================================

    def process_event(self, event: dict[str, Any], payload_hash: str | None = None) -> WebhookOutcome:
        """Process one verified Stripe event.

        Args:
            event: Parsed event JSON
            payload_hash: SHA-256 of the raw payload, computed if omitted

        Returns:
            WebhookOutcome describing what happened

        Raises:
            ConcurrentModificationError: The order kept changing under us.
            botocore.exceptions.ClientError: Datastore failure; the caller
                should answer 5xx so Stripe retries.
        """
        outcome = self._process(event, payload_hash, replaying=False)
        if outcome.result == ProcessingResult.APPLIED and outcome.order_id:
            self.replay_deferred(outcome.order_id)
        return outcome

    def replay_deferred(self, order_id: str) -> list[WebhookOutcome]:
        """Reprocess deferred events for an order until none can be applied.

        Returns:
            Outcomes of the events that were applied
        """
        applied: list[WebhookOutcome] = []
        while True:
            pending = self._db.query_by_gsi(
                WEBHOOK_EVENTS,
                WEBHOOK_ORDER_INDEX,
                "order_id",
                order_id,
                filter_expression=Attr("processing_result").eq(ProcessingResult.DEFERRED.value),
            )
            progressed = False
            for row in pending:
                if not row.get("payload"):
                    continue
                logger.info("Replaying deferred event %s for order %s", row["event_id"], order_id)
                outcome = self._process(json.loads(row["payload"]), row.get("payload_hash"), replaying=True)
                if outcome.result == ProcessingResult.APPLIED:
                    applied.append(outcome)
                    progressed = True
            if not progressed:
                return applied

    def _process(
        self, raw: dict[str, Any], payload_hash: str | None, replaying: bool
    ) -> WebhookOutcome:
        event = _Event(
            event_id=raw.get("id") or "",
            event_type=raw.get("type") or "",
            payload_hash=payload_hash or self.compute_event_hash(raw),
            raw=raw,
        )
        metadata = event.data_object.get("metadata") or {}
        event.order_id = metadata.get("orderId")

        if not event.event_id:
            # Nothing to key the event log on
            return self._finish(event, ProcessingResult.SKIPPED, "Missing event id")

        existing = self._db.get_item(WEBHOOK_EVENTS, {"event_id": event.event_id})
        if existing and existing.get("processing_result") != ProcessingResult.DEFERRED.value:
            return self._finish(event, ProcessingResult.DUPLICATE, "Event already processed")

        if event.event_type == PAYMENT_FAILED:
            return self._handle_payment_failed(event)
        route = self._routes.get(event.event_type)
        if route is None:
            return self._record(event, ProcessingResult.SKIPPED, "Unhandled event type")
        planner, parser = route

        try:
            obj = parser.model_validate(event.data_object)
        except ValidationError as e:
            return self._record(event, ProcessingResult.SKIPPED, f"Malformed event object: {e.error_count()} errors")
        event.payment_type = obj.metadata.type

        precheck = self._precheck(event, obj)
        if precheck is not None or event.order_id is None:
            decision = precheck or _Decision(ProcessingResult.SKIPPED, "Missing orderId")
            return self._record(event, decision.result, decision.message)

        try:
            return self._apply(event, event.order_id, planner, replaying)
        except DuplicateEventError:
            return self._finish(event, ProcessingResult.DUPLICATE, "Event already processed")

    # =========================================================================
    # Planning: decide what an event does to the current order
    # =========================================================================

    def _precheck(self, event: _Event, obj: Any) -> _Decision | None:
        """Checks that do not need the order."""
        if isinstance(obj, CheckoutSessionObject) and event.event_type in CHECKOUT_PAID_EVENTS:
            if obj.payment_status is not None and obj.payment_status != "paid":
                return _Decision(
                    ProcessingResult.SKIPPED,
                    f"Payment status is '{obj.payment_status}', not 'paid'",
                )
            if event.payment_type is None:
                return _Decision(ProcessingResult.SKIPPED, "Missing payment type in metadata")

        if event.order_id is None and isinstance(obj, ChargeObject) and obj.payment_intent:
            event.order_id = self._find_order_by_payment_intent(obj.payment_intent)

        if not event.order_id:
            return _Decision(ProcessingResult.SKIPPED, "Missing orderId in metadata")
        return None

    def _plan_checkout_paid(self, event: _Event, order: Order, now: datetime) -> _Decision | _Mutation:
        obj = CheckoutSessionObject.model_validate(event.data_object)

        if event.payment_type == PaymentType.DEPOSIT:
            if order.status in (OrderStatus.CONFIRMED, OrderStatus.COMPLETED):
                return _Decision(ProcessingResult.SKIPPED, f"Deposit already recorded, order is {order.status.value}")
            if order.status == OrderStatus.CANCELLED:
                return _Decision(ProcessingResult.SKIPPED, "Deposit paid for a cancelled order")

            paid = obj.amount_total if obj.amount_total is not None else order.pricing.deposit
            if paid > order.pricing.total:
                return _Decision(ProcessingResult.SKIPPED, "Paid amount exceeds order total")

            pricing = order.pricing.model_copy(
                update={
                    "deposit": paid,
                    "deposit_paid_at": now,
                    "stripe_session_id": obj.id,
                    "payment_intent_id": obj.payment_intent,
                }
            )
            updated = order.model_copy(
                update={
                    "status": OrderStatus.CONFIRMED,
                    "pricing": pricing,
                    "payment_intent_id": obj.payment_intent,
                }
            )
            mutation = _Mutation(order=updated)
            mutation.party = self._load_party(order)
            if mutation.party and mutation.party.status == PartyStatus.INQUIRY:
                mutation.items.append(
                    self._party_status_item(mutation.party, PartyStatus.CONFIRMED, now, (PartyStatus.INQUIRY,))
                )
            self._add_invoice(mutation, PaymentType.DEPOSIT, now)
            return mutation

        # Balance
        if order.status == OrderStatus.NEW:
            return _Decision(ProcessingResult.DEFERRED, "Balance paid before deposit was recorded")
        if order.status != OrderStatus.CONFIRMED:
            return _Decision(ProcessingResult.SKIPPED, f"Balance payment for order in status {order.status.value}")
        if order.pricing.paid_at is not None:
            return _Decision(ProcessingResult.SKIPPED, "Balance already recorded")

        expected = money.balance(order.pricing.total, order.pricing.deposit)
        if obj.amount_total is not None and obj.amount_total != expected:
            logger.warning(
                "Balance amount mismatch for order %s: paid %d, expected %d",
                order.order_id,
                obj.amount_total,
                expected,
            )

        pricing = order.pricing.model_copy(
            update={
                "paid_at": now,
                "final_session_id": obj.id,
                "final_payment_intent_id": obj.payment_intent,
            }
        )
        updated = order.model_copy(
            update={
                "status": OrderStatus.COMPLETED,
                "pricing": pricing,
                "final_payment_intent_id": obj.payment_intent,
            }
        )
        mutation = _Mutation(order=updated)
        mutation.party = self._load_party(order)
        self._add_invoice(mutation, PaymentType.FULL_PAYMENT, now)
        return mutation

    def _plan_checkout_expired(self, event: _Event, order: Order, now: datetime) -> _Decision | _Mutation:
        if event.payment_type == PaymentType.FULL_PAYMENT:
            return _Decision(ProcessingResult.SKIPPED, "Balance session expired, order unchanged")
        if order.status != OrderStatus.NEW:
            return _Decision(ProcessingResult.SKIPPED, f"Session expired for order in status {order.status.value}")
        updated = order.model_copy(update={"status": OrderStatus.CANCELLED})
        return _Mutation(order=updated, message="Order cancelled after checkout expiry")

    def _plan_refund(self, event: _Event, order: Order, now: datetime) -> _Decision | _Mutation:
        charge = ChargeObject.model_validate(event.data_object)

        if order.status == OrderStatus.NEW:
            return _Decision(ProcessingResult.DEFERRED, "Refund before payment was recorded")
        if order.status == OrderStatus.CANCELLED:
            return _Decision(ProcessingResult.SKIPPED, "Refund for a cancelled order")

        by_charge = dict(order.pricing.refunded_by_charge)
        by_charge[charge.id] = charge.amount_refunded
        refund_amount = sum(by_charge.values())
        charged = order.pricing.collected or charge.amount
        full = money.is_full_refund(charged, refund_amount) or refund_amount > charged

        pricing = order.pricing.model_copy(
            update={
                "refunded_by_charge": by_charge,
                "refund_amount": refund_amount,
                "refunded_at": now,
            }
        )
        if full:
            status = OrderStatus.CANCELLED
        elif order.status == OrderStatus.COMPLETED:
            status = OrderStatus.CONFIRMED
        else:
            status = order.status
        updated = order.model_copy(update={"status": status, "pricing": pricing})
        mutation = _Mutation(
            order=updated,
            message=f"{'Full' if full else 'Partial'} refund of {refund_amount}/{charged}",
        )

        if full:
            party = self._load_party(order)
            if party and not party.is_terminal:
                mutation.items.append(
                    self._party_status_item(
                        party,
                        PartyStatus.CANCELLED,
                        now,
                        (PartyStatus.INQUIRY, PartyStatus.CONFIRMED),
                    )
                )
            for invoice in self._invoices.get_invoices_for_order(order.order_id):
                if invoice.status == InvoiceStatus.PAID:
                    mutation.items.append(self._void_invoice_item(invoice, now))

        log_payment_operation(
            logger,
            "refund",
            order_id=order.order_id,
            amount=refund_amount,
            status=status.value,
            charge_id=charge.id,
            full_refund=full,
        )
        return mutation

    def _handle_payment_failed(self, event: _Event) -> WebhookOutcome:
        try:
            intent = PaymentIntentObject.model_validate(event.data_object)
            reason = (intent.last_payment_error or {}).get("message", "unknown")
            event.payment_type = intent.metadata.type
        except ValidationError:
            reason = "unparseable payment intent"
        log_payment_operation(
            logger,
            "payment_failed",
            order_id=event.order_id,
            payment_type=event.payment_type.value if event.payment_type else None,
            error=reason,
        )
        return self._record(event, ProcessingResult.LOGGED, f"Payment failed: {reason}")

    # =========================================================================
    # Committing
    # =========================================================================

    def _apply(
        self, event: _Event, order_id: str, planner: _Planner, replaying: bool
    ) -> WebhookOutcome:
        """Plan and commit an event, retrying on concurrent order changes."""
        for attempt in range(1, self._max_attempts + 1):
            item = self._db.get_item(ORDERS, {"order_id": order_id})
            if not item:
                return self._record(event, ProcessingResult.SKIPPED, f"Order {order_id} not found")
            order = Order.model_validate(item)
            now = self._clock()

            plan = planner(event, order, now)
            if isinstance(plan, _Decision):
                if plan.result != ProcessingResult.DEFERRED:
                    return self._record(event, plan.result, plan.message)
                if replaying:
                    return self._finish(event, plan.result, plan.message)
                return self._defer(event, order, plan.message)

            new_order = plan.order.model_copy(update={"version": order.version + 1, "updated_at": now})
            items = [
                self._marker_item(event, ProcessingResult.APPLIED, plan.message, now),
                self._db.tx_put(
                    ORDERS,
                    to_item(new_order),
                    condition_expression="version = :version",
                    expression_attribute_values={":version": order.version},
                ),
                *plan.items,
            ]
            if self._db.transact_write(items):
                plan.order = new_order
                self._after_commit(event, plan)
                return self._finish(event, ProcessingResult.APPLIED, plan.message)

            marker = self._db.get_item(WEBHOOK_EVENTS, {"event_id": event.event_id})
            if marker and marker.get("processing_result") != ProcessingResult.DEFERRED.value:
                raise DuplicateEventError(details={"event_id": event.event_id})
            logger.warning(
                "Concurrent modification applying %s to order %s (attempt %d/%d)",
                event.event_id,
                event.order_id,
                attempt,
                self._max_attempts,
            )

        raise ConcurrentModificationError(details={"order_id": order_id, "event_id": event.event_id})

    def _after_commit(self, event: _Event, plan: _Mutation) -> None:
        """Send the payment receipt for a committed payment."""
        if plan.invoice is None or plan.payment_type is None or self._notifier is None:
            return
        notifier = self._notifier
        invoice = plan.invoice
        payment_type = plan.payment_type
        party = plan.party

        def send() -> None:
            notifier.send_payment_receipt(
                to=plan.order.contact_email,
                invoice_number=invoice.invoice_number,
                amount=invoice.total,
                payment_type=payment_type,
                parent_name=party.parent_name if party else plan.order.contact_name,
                party_date=party.event_date if party else None,
                pdf_bytes=self._invoices.generate_pdf(invoice),
            )

        send_best_effort(f"payment receipt {invoice.invoice_number}", send)

    def _record(self, event: _Event, result: ProcessingResult, message: str) -> WebhookOutcome:
        """Write a non-applied outcome to the event log."""
        now = self._clock()
        row = self._event_row(event, result, message, now)
        if result == ProcessingResult.DEFERRED:
            row.payload = json.dumps(event.raw)
        written = self._db.put_item(
            WEBHOOK_EVENTS,
            to_item(row),
            condition_expression=_MARKER_CONDITION,
            expression_attribute_values={":deferred": ProcessingResult.DEFERRED.value},
        )
        if not written:
            return self._finish(event, ProcessingResult.DUPLICATE, "Event already processed")
        return self._finish(event, result, message)

    def _defer(self, event: _Event, seen: Order, message: str) -> WebhookOutcome:
        """Park an event that the order is not ready for yet.

        An event committed to the order after ``seen`` was read may have run
        its replay before the deferred row existed, so in that case the
        replay is run here instead.
        """
        outcome = self._record(event, ProcessingResult.DEFERRED, message)
        if outcome.result != ProcessingResult.DEFERRED:
            return outcome

        current = self._db.get_item(ORDERS, {"order_id": seen.order_id})
        if current is None or int(current.get("version", 0)) == seen.version:
            return outcome

        logger.info("Order %s changed while deferring %s, replaying", seen.order_id, event.event_id)
        for replayed in self.replay_deferred(seen.order_id):
            if replayed.event_id == event.event_id:
                return replayed
        return outcome

    def _finish(self, event: _Event, result: ProcessingResult, message: str) -> WebhookOutcome:
        log_webhook_event(
            logger,
            event.event_type,
            event.event_id,
            order_id=event.order_id,
            result=result.value,
            error=None if result == ProcessingResult.APPLIED else message,
        )
        return WebhookOutcome(
            event_id=event.event_id,
            event_type=event.event_type,
            result=result,
            order_id=event.order_id,
            message=message,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _event_row(
        self, event: _Event, result: ProcessingResult, message: str, now: datetime
    ) -> StripeWebhookEvent:
        return StripeWebhookEvent(
            event_id=event.event_id,
            event_type=event.event_type,
            processed_at=now,
            payload_hash=event.payload_hash,
            order_id=event.order_id,
            payment_type=event.payment_type,
            processing_result=result,
            error_message=None if result == ProcessingResult.APPLIED else message,
        )

    def _marker_item(
        self, event: _Event, result: ProcessingResult, message: str, now: datetime
    ) -> dict[str, Any]:
        return self._db.tx_put(
            WEBHOOK_EVENTS,
            to_item(self._event_row(event, result, message, now)),
            condition_expression=_MARKER_CONDITION,
            expression_attribute_values={":deferred": ProcessingResult.DEFERRED.value},
        )

    def _party_status_item(
        self,
        party: Party,
        status: PartyStatus,
        now: datetime,
        allowed_from: tuple[PartyStatus, ...],
    ) -> dict[str, Any]:
        values: dict[str, Any] = {":status": status.value, ":now": now.isoformat()}
        placeholders = []
        for index, previous in enumerate(allowed_from):
            values[f":from{index}"] = previous.value
            placeholders.append(f":from{index}")
        return self._db.tx_update(
            PARTIES,
            {"party_id": party.party_id},
            "SET #status = :status, updated_at = :now",
            values,
            expression_attribute_names={"#status": "status"},
            condition_expression=f"#status IN ({', '.join(placeholders)})",
        )

    def _void_invoice_item(self, invoice: Invoice, now: datetime) -> dict[str, Any]:
        return self._db.tx_update(
            INVOICES,
            {"invoice_id": invoice.invoice_id},
            "SET #status = :void, updated_at = :now",
            {":void": InvoiceStatus.VOID.value, ":paid": InvoiceStatus.PAID.value, ":now": now.isoformat()},
            expression_attribute_names={"#status": "status"},
            condition_expression="#status = :paid",
        )

    def _add_invoice(self, mutation: _Mutation, payment_type: PaymentType, now: datetime) -> None:
        invoice, items = self._invoices.prepare_invoice(mutation.order, payment_type, now, mutation.party)
        mutation.payment_type = payment_type
        mutation.invoice = invoice
        mutation.items.extend(items)

    def _load_party(self, order: Order) -> Party | None:
        if not order.party_id:
            return None
        item = self._db.get_item(PARTIES, {"party_id": order.party_id})
        return Party.model_validate(item) if item else None

    def _find_order_by_payment_intent(self, payment_intent_id: str) -> str | None:
        for index in (ORDER_PAYMENT_INTENT_INDEX, ORDER_FINAL_PAYMENT_INTENT_INDEX):
            attribute = index.removesuffix("-index")
            matches = self._db.query_by_gsi(ORDERS, index, attribute, payment_intent_id)
            if matches:
                order_id: str = matches[0]["order_id"]
                return order_id
        return None

    @staticmethod
    def compute_event_hash(event: dict[str, Any]) -> str:
        """SHA-256 of the canonical JSON form of an event."""
        return hashlib.sha256(json.dumps(event, sort_keys=True).encode()).hexdigest()
