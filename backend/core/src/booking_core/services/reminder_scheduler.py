"""Time-window reminder scans.

Each scan selects records crossing a threshold, sends one email per
record and then sets that record's "already sent" timestamp with a
conditional write. A failed send leaves the guard unset so the next run
retries it. Notification failures are counted per item; datastore errors
propagate and abort the run.
"""

from datetime import datetime, timedelta

from boto3.dynamodb.conditions import Key

from booking_core.config import Settings, get_settings
from booking_core.models.enums import OrderStatus, PartyStatus, PaymentType
from booking_core.models.order import Order
from booking_core.models.party import Party
from booking_core.models.reminders import ScanResult
from booking_core.utils.dates import Clock, local_date, local_day_bounds, utc_iso, utc_now
from booking_core.utils.logging import get_logger, log_scan_result

from . import money
from .dynamodb import DynamoDBService
from .notification_service import NotificationError, NotificationService
from .tables import ORDER_STATUS_DUE_INDEX, ORDERS, PARTIES, PARTY_STATUS_INDEX

logger = get_logger(__name__)

PARTY_REMINDER = "party_reminder"
FEEDBACK_REQUEST = "feedback_request"
PAYMENT_DUE = "payment_due"


class ReminderScheduler:
    """Runs the reminder scans.

    Usage:
        scheduler = ReminderScheduler(db, notifier)
        results = scheduler.run_all()
    """

    def __init__(
        self,
        db: DynamoDBService,
        notifier: NotificationService,
        settings: Settings | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._db = db
        self._notifier = notifier
        self._settings = settings or get_settings()
        self._clock = clock

    def run_all(self) -> dict[str, ScanResult]:
        """Run every scan and return the results keyed by scan name."""
        return {
            PARTY_REMINDER: self.send_party_reminders(),
            FEEDBACK_REQUEST: self.send_feedback_requests(),
            PAYMENT_DUE: self.send_payment_due_reminders(),
        }

    def send_party_reminders(self) -> ScanResult:
        """Remind parents of confirmed parties starting within the window."""
        now = self._clock()
        window_end = now + timedelta(hours=self._settings.party_reminder_hours)
        parties = self._parties_between(PartyStatus.CONFIRMED, now, window_end)

        result = ScanResult()
        for party in parties:
            if party.reminder_sent_at is not None:
                result.skipped += 1
                continue
            try:
                self._notifier.send_party_reminder(
                    to=party.parent_email,
                    parent_name=party.parent_name,
                    child_name=party.child_name,
                    party_date=party.event_date,
                    party_time=party.start_time,
                    venue=party.venue,
                    allergies=[*party.allergies, *party.dietary_restrictions],
                    emergency_contact=(
                        (party.emergency_contact.name, party.emergency_contact.phone)
                        if party.emergency_contact
                        else None
                    ),
                )
            except NotificationError:
                logger.warning("Party reminder failed for party %s", party.party_id)
                result.errors += 1
                continue
            if self._mark_party(party, "reminder_sent_at", now):
                result.sent += 1
            else:
                result.skipped += 1

        log_scan_result(logger, PARTY_REMINDER, sent=result.sent, skipped=result.skipped, errors=result.errors)
        return result

    def send_feedback_requests(self) -> ScanResult:
        """Ask for feedback on parties held on the previous local day.

        A confirmed party whose feedback request went out is promoted to
        ``completed``.
        """
        now = self._clock()
        tz = self._settings.business_timezone
        yesterday = local_date(now, tz) - timedelta(days=1)
        start, end = local_day_bounds(yesterday, tz)

        parties = [
            *self._parties_between(PartyStatus.CONFIRMED, start, end, include_end=False),
            *self._parties_between(PartyStatus.COMPLETED, start, end, include_end=False),
        ]

        result = ScanResult()
        for party in parties:
            if party.feedback_sent_at is not None:
                result.skipped += 1
                continue
            try:
                self._notifier.send_feedback_request(
                    to=party.parent_email,
                    parent_name=party.parent_name,
                    child_name=party.child_name,
                    feedback_url=f"{self._settings.public_base_url.rstrip('/')}/feedback/{party.party_id}",
                )
            except NotificationError:
                logger.warning("Feedback request failed for party %s", party.party_id)
                result.errors += 1
                continue
            promote = party.status == PartyStatus.CONFIRMED
            if self._mark_party(party, "feedback_sent_at", now, complete=promote):
                result.sent += 1
            else:
                result.skipped += 1

        log_scan_result(logger, FEEDBACK_REQUEST, sent=result.sent, skipped=result.skipped, errors=result.errors)
        return result

    def send_payment_due_reminders(self) -> ScanResult:
        """Remind customers of payments due in exactly N days.

        New orders owe the deposit, confirmed orders owe the balance.
        """
        now = self._clock()
        due = local_date(now, self._settings.business_timezone) + timedelta(
            days=self._settings.payment_reminder_days
        )

        orders: list[Order] = []
        for status in (OrderStatus.NEW, OrderStatus.CONFIRMED):
            items = self._db.query(
                ORDERS,
                Key("status").eq(status.value) & Key("due_date").eq(due.isoformat()),
                index_name=ORDER_STATUS_DUE_INDEX,
            )
            orders.extend(Order.model_validate(item) for item in items)

        result = ScanResult()
        for order in orders:
            if order.payment_reminder_sent_at is not None:
                result.skipped += 1
                continue
            if order.status == OrderStatus.NEW:
                payment_type = PaymentType.DEPOSIT
                amount = order.pricing.deposit
            else:
                payment_type = PaymentType.FULL_PAYMENT
                amount = money.balance(order.pricing.total, order.pricing.deposit)
            if amount <= 0:
                result.skipped += 1
                continue
            try:
                self._notifier.send_payment_due_reminder(
                    to=order.contact_email,
                    contact_name=order.contact_name,
                    order_number=order.order_number,
                    amount=amount,
                    due_date=due,
                    payment_type=payment_type,
                )
            except NotificationError:
                logger.warning("Payment reminder failed for order %s", order.order_id)
                result.errors += 1
                continue
            if self._mark_order(order, now):
                result.sent += 1
            else:
                result.skipped += 1

        log_scan_result(logger, PAYMENT_DUE, sent=result.sent, skipped=result.skipped, errors=result.errors)
        return result

    def _parties_between(
        self,
        status: PartyStatus,
        start: datetime,
        end: datetime,
        include_end: bool = True,
    ) -> list[Party]:
        items = self._db.query(
            PARTIES,
            Key("status").eq(status.value) & Key("event_at").between(utc_iso(start), utc_iso(end)),
            index_name=PARTY_STATUS_INDEX,
        )
        parties = [Party.model_validate(item) for item in items]
        if not include_end:
            parties = [p for p in parties if p.event_at < end]
        return parties

    def _mark_party(self, party: Party, guard: str, now: datetime, complete: bool = False) -> bool:
        """Set a party's sent-at guard if it is still unset.

        Returns:
            False if another run set it first
        """
        expression = f"SET {guard} = :now, updated_at = :now"
        values: dict[str, str] = {":now": now.isoformat()}
        names: dict[str, str] | None = None
        if complete:
            expression += ", #status = :completed"
            values[":completed"] = PartyStatus.COMPLETED.value
            names = {"#status": "status"}
        updated = self._db.update_item(
            PARTIES,
            {"party_id": party.party_id},
            expression,
            values,
            expression_attribute_names=names,
            condition_expression=f"attribute_not_exists({guard})",
        )
        return updated is not None

    def _mark_order(self, order: Order, now: datetime) -> bool:
        """Set the payment reminder guard; bumps the version like every order write."""
        updated = self._db.update_item(
            ORDERS,
            {"order_id": order.order_id},
            "SET payment_reminder_sent_at = :now, updated_at = :now ADD version :one",
            {":now": now.isoformat(), ":one": 1},
            condition_expression="attribute_not_exists(payment_reminder_sent_at)",
        )
        return updated is not None
