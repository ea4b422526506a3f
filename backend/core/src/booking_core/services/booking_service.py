"""Booking intake: validate a request and create the booking records.

A booking writes five things in one DynamoDB transaction: the customer
aggregate update, the order-number claim, the Party, the Order and the
SafetyChecklist. Either all of them exist afterwards or none do.
"""

import random
import uuid
from collections.abc import Callable
from datetime import datetime

from booking_core.config import Settings, get_settings
from booking_core.models.booking import BookingRequest, BookingResult, ContactInfo
from booking_core.models.customer import Customer, normalize_email, split_name
from booking_core.models.enums import NotificationOutcome, OrderItemKind, OrderStatus, PartyStatus
from booking_core.models.errors import BookingValidationError, GenerationExhausted
from booking_core.models.order import Order, OrderItem, Pricing
from booking_core.models.party import Party
from booking_core.models.safety import SafetyChecklist
from booking_core.utils.dates import Clock, local_to_utc, utc_now
from booking_core.utils.logging import get_logger

from . import money
from .catalog import CatalogService
from .dynamodb import DynamoDBService, to_item
from .notification_service import NotificationService, send_best_effort
from .numbering import OrderNumberGenerator
from .tables import CUSTOMERS, ORDERS, PARTIES, SAFETY_CHECKLISTS

logger = get_logger(__name__)

MISSING_FIELDS_MESSAGE = "Missing required fields"
NO_PRICING_SOURCE_MESSAGE = "Select a package or at least one activity"


class BookingService:
    """Creates bookings from validated requests.

    Usage:
        service = BookingService(db, notifier=get_notification_service())
        result = service.create_booking(request)
    """

    def __init__(
        self,
        db: DynamoDBService,
        catalog: CatalogService | None = None,
        notifier: NotificationService | None = None,
        settings: Settings | None = None,
        clock: Clock = utc_now,
        rng: random.Random | None = None,
    ) -> None:
        self._db = db
        self._catalog = catalog or CatalogService(db)
        self._notifier = notifier
        self._settings = settings or get_settings()
        self._clock = clock
        self._numbers = OrderNumberGenerator(db, clock=clock, rng=rng)

    def create_booking(self, request: BookingRequest) -> BookingResult:
        """Create a booking.

        Args:
            request: Parsed booking form

        Returns:
            BookingResult with the new IDs and the confirmation email outcome

        Raises:
            BookingValidationError: Missing sections, no pricing source, or
                an unknown package/activity (depending on policy).
            GenerationExhausted: No free order number after the configured
                number of attempts.
        """
        if request.party_details is None or request.child_info is None or request.contact is None:
            raise BookingValidationError(message=MISSING_FIELDS_MESSAGE)
        if not request.package_id and not request.activity_ids:
            raise BookingValidationError(message=NO_PRICING_SOURCE_MESSAGE)

        details = request.party_details
        child = request.child_info
        contact = request.contact
        now = self._clock()

        items, package_name = self._price(request)
        total = sum(item.price * item.quantity for item in items)
        deposit = money.deposit(total, self._settings.deposit_percent)

        customer = self._resolve_customer(contact, now)

        order_id = str(uuid.uuid4())
        party_id = str(uuid.uuid4())
        event_at = local_to_utc(details.date, details.start_time, self._settings.business_timezone)

        party = Party(
            party_id=party_id,
            customer_id=customer.customer_id,
            order_id=order_id,
            event_at=event_at,
            event_date=details.date,
            start_time=details.start_time,
            venue=details.venue,
            guest_count=details.guest_count,
            special_requests=details.special_requests,
            child_name=child.name,
            child_age=child.age,
            child_gender=child.gender,
            interests=child.interests,
            allergies=child.allergies,
            dietary_restrictions=child.dietary_restrictions,
            special_needs=child.special_needs,
            parent_name=contact.parent_name,
            parent_email=customer.email,
            parent_phone=contact.parent_phone,
            emergency_contact=contact.emergency_contact,
            package_id=request.package_id,
            activity_ids=[] if request.package_id else request.activity_ids,
            status=PartyStatus.INQUIRY,
            created_at=now,
            updated_at=now,
        )
        checklist = SafetyChecklist(
            checklist_id=str(uuid.uuid4()),
            order_id=order_id,
            party_id=party_id,
            safety_acknowledged=request.safety_acknowledged,
            allergies=child.allergies,
            dietary_restrictions=child.dietary_restrictions,
            special_needs=child.special_needs,
            emergency_contact=contact.emergency_contact,
            guest_count=details.guest_count,
            created_at=now,
        )
        pricing = Pricing(
            total=total,
            deposit=deposit,
            deposit_percent=self._settings.deposit_percent,
            currency=self._settings.currency,
        )

        order = self._commit(
            customer=customer,
            party=party,
            checklist=checklist,
            total=total,
            build_order=lambda number: Order(
                order_id=order_id,
                order_number=number,
                customer_id=customer.customer_id,
                party_id=party_id,
                contact_email=customer.email,
                contact_name=contact.parent_name,
                status=OrderStatus.NEW,
                items=items,
                pricing=pricing,
                due_date=details.date,
                created_at=now,
                updated_at=now,
            ),
        )
        logger.info(
            "Booking created: order %s (%s), party %s, total %d",
            order.order_id,
            order.order_number,
            party_id,
            total,
        )

        notification = self._send_confirmation(order, party, package_name)
        self._notify_admin(order, party, package_name)
        return BookingResult(
            order_id=order.order_id,
            order_number=order.order_number,
            party_id=party_id,
            customer_id=customer.customer_id,
            total=total,
            deposit=deposit,
            notification=notification,
        )

    def _price(self, request: BookingRequest) -> tuple[list[OrderItem], str]:
        """Resolve order lines and a display name from the catalog."""
        if request.package_id:
            package = self._catalog.get_package(request.package_id)
            if package is None:
                raise BookingValidationError(
                    message="Unknown package", details={"package_id": request.package_id}
                )
            item = OrderItem(
                kind=OrderItemKind.PACKAGE,
                ref_id=package.package_id,
                title=package.title,
                price=package.price,
            )
            return [item], package.title

        activities = self._catalog.get_activities(request.activity_ids)
        unknown = [a for a in request.activity_ids if a not in activities]
        if unknown:
            if self._settings.unknown_activity_policy == "reject":
                raise BookingValidationError(
                    message="Unknown activity", details={"activity_ids": ",".join(unknown)}
                )
            logger.warning("Ignoring unknown activity ids: %s", ", ".join(unknown))

        items = [
            OrderItem(
                kind=OrderItemKind.ACTIVITY,
                ref_id=activities[a].activity_id,
                title=activities[a].title,
                price=activities[a].price,
            )
            for a in request.activity_ids
            if a in activities
        ]
        name = ", ".join(item.title for item in items) or "Vlastní program"
        return items, name

    def _resolve_customer(self, contact: ContactInfo, now: datetime) -> Customer:
        """Insert the customer for this email, or fetch the existing one.

        The conditional put makes concurrent first bookings with the same
        email converge on a single row.
        """
        email = normalize_email(contact.parent_email)
        first_name, last_name = split_name(contact.parent_name)
        candidate = Customer(
            customer_id=str(uuid.uuid4()),
            email=email,
            first_name=first_name,
            last_name=last_name,
            phone=contact.parent_phone,
            created_at=now,
            updated_at=now,
        )
        if self._db.put_item(
            CUSTOMERS, to_item(candidate), condition_expression="attribute_not_exists(email)"
        ):
            logger.info("Created customer %s", candidate.customer_id)
            return candidate

        existing = self._db.get_item(CUSTOMERS, {"email": email})
        if existing is None:
            # Only possible if the row was deleted between the two calls
            raise BookingValidationError(message="Customer could not be resolved")
        return Customer.model_validate(existing)

    def _commit(
        self,
        *,
        customer: Customer,
        party: Party,
        checklist: SafetyChecklist,
        total: int,
        build_order: Callable[[str], Order],
    ) -> Order:
        """Write the booking, retrying with a fresh order number on collision."""
        now_iso = party.created_at.isoformat()
        customer_update = self._db.tx_update(
            CUSTOMERS,
            {"email": customer.email},
            "ADD total_booked :one, total_spent :total "
            "SET last_event_date = :event_date, updated_at = :now",
            {
                ":one": 1,
                ":total": total,
                ":event_date": party.event_date.isoformat(),
                ":now": now_iso,
            },
            condition_expression="attribute_exists(email)",
        )
        party_put = self._db.tx_put(
            PARTIES, to_item(party), condition_expression="attribute_not_exists(party_id)"
        )
        checklist_put = self._db.tx_put(
            SAFETY_CHECKLISTS,
            to_item(checklist),
            condition_expression="attribute_not_exists(checklist_id)",
        )

        attempts = self._settings.order_number_max_attempts
        for attempt in range(1, attempts + 1):
            order = build_order(self._numbers.next())
            items = [
                customer_update,
                self._numbers.claim_item(order.order_number, order.order_id),
                party_put,
                self._db.tx_put(
                    ORDERS, to_item(order), condition_expression="attribute_not_exists(order_id)"
                ),
                checklist_put,
            ]
            if self._db.transact_write(items):
                return order
            logger.warning(
                "Order number %s rejected (attempt %d/%d)",
                order.order_number,
                attempt,
                attempts,
            )
        raise GenerationExhausted(details={"attempts": str(attempts)})

    def _notify_admin(self, order: Order, party: Party, package_name: str) -> None:
        admin_email = self._settings.admin_email
        if self._notifier is None or not admin_email:
            return
        notifier = self._notifier
        send_best_effort(
            f"admin notification for order {order.order_id}",
            lambda: notifier.send_admin_booking_notification(
                to=admin_email,
                order_number=order.order_number,
                parent_name=party.parent_name,
                parent_email=party.parent_email,
                parent_phone=party.parent_phone,
                party_date=party.event_date,
                party_time=party.start_time,
                venue=party.venue,
                guest_count=party.guest_count,
                package_name=package_name,
                total=order.pricing.total,
            ),
        )

    def _send_confirmation(self, order: Order, party: Party, package_name: str) -> NotificationOutcome:
        if self._notifier is None:
            return NotificationOutcome.SKIPPED
        notifier = self._notifier
        return send_best_effort(
            f"booking confirmation for order {order.order_id}",
            lambda: notifier.send_booking_confirmation(
                to=order.contact_email,
                parent_name=party.parent_name,
                child_name=party.child_name,
                party_date=party.event_date,
                party_time=party.start_time,
                venue=party.venue,
                package_name=package_name,
                deposit_amount=order.pricing.deposit,
                order_number=order.order_number,
            ),
        )
