"""Order model: the commercial transaction behind a party."""

from datetime import date, datetime

from pydantic import BaseModel, Field

from .enums import OrderItemKind, OrderStatus


class OrderItem(BaseModel):
    """A priced line on an order, resolved from the catalog at booking time."""

    kind: OrderItemKind
    ref_id: str = Field(..., description="Package or activity ID")
    title: str
    price: int = Field(..., ge=0, description="Price in minor units")
    quantity: int = Field(default=1, ge=1)


class Pricing(BaseModel):
    """Money state of an order.

    ``deposit`` is pre-computed at booking and overwritten with the amount
    actually collected when the deposit payment is confirmed.
    """

    total: int = Field(..., ge=0)
    deposit: int = Field(..., ge=0)
    deposit_percent: int = Field(default=30, ge=0, le=100)
    currency: str = Field(default="czk")
    deposit_paid_at: datetime | None = None
    paid_at: datetime | None = None
    refunded_at: datetime | None = None
    refund_amount: int | None = Field(default=None, ge=0)
    refunded_by_charge: dict[str, int] = Field(
        default_factory=dict, description="Cumulative refunded amount per Stripe charge"
    )
    stripe_session_id: str | None = None
    payment_intent_id: str | None = None
    final_session_id: str | None = None
    final_payment_intent_id: str | None = None

    @property
    def balance(self) -> int:
        return self.total - self.deposit

    @property
    def collected(self) -> int:
        """Amount received so far across installments."""
        if self.paid_at is not None:
            return self.total
        if self.deposit_paid_at is not None:
            return self.deposit
        return 0


class Order(BaseModel):
    """An order linked to at most one party."""

    order_id: str = Field(..., description="Unique order ID")
    order_number: str = Field(..., description="Human-readable order number")
    customer_id: str
    party_id: str | None = None
    contact_email: str
    contact_name: str
    status: OrderStatus = OrderStatus.NEW
    items: list[OrderItem] = Field(default_factory=list)
    pricing: Pricing
    payment_intent_id: str | None = Field(
        default=None, description="Deposit/full PaymentIntent, indexed for refunds"
    )
    final_payment_intent_id: str | None = Field(
        default=None, description="Balance PaymentIntent, indexed for refunds"
    )
    due_date: date | None = Field(default=None, description="Balance due date")
    payment_reminder_sent_at: datetime | None = None
    version: int = Field(default=0, ge=0, description="Optimistic concurrency counter")
    created_at: datetime
    updated_at: datetime

    @property
    def title(self) -> str:
        """Display title built from the order lines."""
        return ", ".join(item.title for item in self.items) or self.order_number
