"""Invoice model: billing document for one payment on an order."""

from datetime import date, datetime

from pydantic import BaseModel, Field

from .enums import InvoiceStatus, InvoiceType


class InvoiceItem(BaseModel):
    """A single invoice line."""

    description: str
    quantity: int = Field(default=1, ge=1)
    unit_price: int = Field(..., ge=0)
    total: int = Field(..., ge=0)


class Invoice(BaseModel):
    """An invoice issued when a payment notification is applied."""

    invoice_id: str
    invoice_number: str = Field(..., examples=["PP-INV-2026-001"])
    order_id: str
    customer_id: str
    type: InvoiceType
    status: InvoiceStatus = InvoiceStatus.PAID
    currency: str = Field(default="czk")
    total: int = Field(..., ge=0)
    items: list[InvoiceItem] = Field(default_factory=list)
    issue_date: date
    due_date: date
    paid_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
