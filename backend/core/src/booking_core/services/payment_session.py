"""Payment session initiation for deposits and balance payments.

Starting a session never changes the order; state only moves when the
matching webhook is reconciled.
"""

from datetime import datetime, timezone
from urllib.parse import quote

from pydantic import BaseModel

from booking_core.config import Settings, get_settings
from booking_core.models.enums import OrderStatus, PaymentType
from booking_core.models.errors import InvalidStateError, NotFoundError, TransientExternalError
from booking_core.models.order import Order
from booking_core.models.party import Party
from booking_core.utils.dates import Clock, utc_now
from booking_core.utils.logging import get_logger, log_payment_operation

from . import money
from .dynamodb import DynamoDBService
from .notification_service import format_date
from .stripe_service import StripeService, StripeServiceError
from .tables import ORDERS, PARTIES

logger = get_logger(__name__)


class CheckoutSession(BaseModel):
    """Handle for a hosted checkout page."""

    session_id: str
    checkout_url: str
    expires_at: datetime
    amount: int
    payment_type: PaymentType


class PaymentSessionService:
    """Opens Stripe Checkout sessions for order installments."""

    def __init__(
        self,
        db: DynamoDBService,
        gateway: StripeService,
        settings: Settings | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._db = db
        self._gateway = gateway
        self._settings = settings or get_settings()
        self._clock = clock

    def start(self, order_id: str, payment_type: PaymentType) -> CheckoutSession:
        """Dispatch to ``start_deposit`` or ``start_full_payment``."""
        if payment_type == PaymentType.DEPOSIT:
            return self.start_deposit(order_id)
        return self.start_full_payment(order_id)

    def start_deposit(self, order_id: str) -> CheckoutSession:
        """Open a session collecting the deposit.

        Raises:
            NotFoundError: Unknown order.
            InvalidStateError: Order is not ``new``.
            TransientExternalError: Stripe failed or timed out.
        """
        order = self._load_order(order_id)
        if order.status != OrderStatus.NEW:
            raise InvalidStateError(
                message=f"Deposit requires a new order, order is {order.status.value}",
                details={"order_id": order_id, "status": order.status.value},
            )
        amount = order.pricing.deposit or money.deposit(
            order.pricing.total, order.pricing.deposit_percent
        )
        return self._open(order, PaymentType.DEPOSIT, amount)

    def start_full_payment(self, order_id: str) -> CheckoutSession:
        """Open a session collecting the remaining balance.

        Raises:
            NotFoundError: Unknown order.
            InvalidStateError: Order is not ``confirmed`` or the deposit is unpaid.
            TransientExternalError: Stripe failed or timed out.
        """
        order = self._load_order(order_id)
        if order.status != OrderStatus.CONFIRMED or order.pricing.deposit_paid_at is None:
            raise InvalidStateError(
                message="Balance payment requires a confirmed order with a paid deposit",
                details={"order_id": order_id, "status": order.status.value},
            )
        amount = money.balance(order.pricing.total, order.pricing.deposit)
        return self._open(order, PaymentType.FULL_PAYMENT, amount)

    def _load_order(self, order_id: str) -> Order:
        item = self._db.get_item(ORDERS, {"order_id": order_id})
        if not item:
            raise NotFoundError(details={"order_id": order_id})
        return Order.model_validate(item)

    def _load_party(self, order: Order) -> Party | None:
        if not order.party_id:
            return None
        item = self._db.get_item(PARTIES, {"party_id": order.party_id}, consistent_read=False)
        return Party.model_validate(item) if item else None

    def _open(self, order: Order, payment_type: PaymentType, amount: int) -> CheckoutSession:
        ttl = self._settings.checkout_session_ttl_seconds
        # Retries within the same window reuse the session Stripe already made,
        # so every parameter sent with the key must be fixed by the window
        window = int(self._clock().timestamp()) // ttl
        expires_at = datetime.fromtimestamp((window + 2) * ttl, tz=timezone.utc)
        idempotency_key = f"checkout_{order.order_id}_{payment_type.value}_{amount}_{window}"

        party = self._load_party(order)
        label = "Záloha" if payment_type == PaymentType.DEPOSIT else "Doplatek"
        product_name = f"{label} - {order.title}"
        if party:
            product_name = f"{product_name} ({format_date(party.event_date)})"

        base_url = self._settings.public_base_url.rstrip("/")
        try:
            result = self._gateway.create_checkout_session(
                order_id=order.order_id,
                payment_type=payment_type.value,
                amount=amount,
                product_name=product_name,
                description=f"Objednávka {order.order_number}",
                customer_email=order.contact_email,
                success_url=f"{base_url}/booking/success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{base_url}/booking/cancel?order_id={quote(order.order_id)}",
                expires_at=expires_at,
                idempotency_key=idempotency_key,
            )
        except StripeServiceError as e:
            log_payment_operation(
                logger,
                "create_checkout_session",
                order_id=order.order_id,
                payment_type=payment_type.value,
                amount=amount,
                error=str(e),
            )
            raise TransientExternalError(
                details={"order_id": order.order_id, "stripe_error_code": e.stripe_error_code or ""}
            ) from e

        log_payment_operation(
            logger,
            "create_checkout_session",
            order_id=order.order_id,
            payment_type=payment_type.value,
            amount=amount,
            status=order.status.value,
            session_id=result["session_id"],
        )
        return CheckoutSession(
            session_id=result["session_id"],
            checkout_url=result["checkout_url"],
            expires_at=result["expires_at"],
            amount=amount,
            payment_type=payment_type,
        )
