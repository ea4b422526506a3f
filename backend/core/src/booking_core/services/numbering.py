"""Order and invoice number generation.

Order numbers are random and claimed with a conditional put inside the
booking transaction; a collision cancels the transaction and the caller
retries with a fresh number. Invoice numbers come from a per-year counter
row updated conditionally in the same transaction as the invoice.
"""

import random
import re
import string
from datetime import datetime
from typing import Any

from booking_core.utils.dates import Clock, utc_now

from .dynamodb import DynamoDBService
from .tables import COUNTERS, ORDER_NUMBERS

ORDER_NUMBER_PATTERN = re.compile(r"^PP\d{4}-[A-Z0-9]{6}$")
INVOICE_NUMBER_PATTERN = re.compile(r"^PP-INV-\d{4}-\d{3,}$")

_BASE36 = string.digits + string.ascii_uppercase
_SUFFIX_LENGTH = 6


def generate_order_number(now: datetime, rng: random.Random | None = None) -> str:
    """Generate an order number like ``PP2606-7QK2ZD``.

    Args:
        now: Clock reading; provides the YYMM part
        rng: Random source for the suffix

    Returns:
        Order number string
    """
    source = rng or random.SystemRandom()
    suffix = "".join(source.choice(_BASE36) for _ in range(_SUFFIX_LENGTH))
    return f"PP{now:%y%m}-{suffix}"


def format_invoice_number(year: int, seq: int) -> str:
    """Format an invoice number like ``PP-INV-2026-007``."""
    return f"PP-INV-{year}-{seq:03d}"


def invoice_number_key(invoice_number: str) -> tuple[int, int]:
    """``(year, seq)`` of an invoice number, for ordering past seq 999."""
    _, _, year, seq = invoice_number.split("-")
    return int(year), int(seq)


def invoice_counter_id(year: int) -> str:
    return f"invoice-{year}"


class OrderNumberGenerator:
    """Produces candidate order numbers and their claim transaction items."""

    def __init__(
        self,
        db: DynamoDBService,
        clock: Clock = utc_now,
        rng: random.Random | None = None,
    ) -> None:
        self._db = db
        self._clock = clock
        self._rng = rng

    def next(self) -> str:
        """Generate a fresh candidate number."""
        return generate_order_number(self._clock(), self._rng)

    def claim_item(self, order_number: str, order_id: str) -> dict[str, Any]:
        """Transaction item that fails if the number is already taken."""
        return self._db.tx_put(
            ORDER_NUMBERS,
            {
                "order_number": order_number,
                "order_id": order_id,
                "created_at": self._clock().isoformat(),
            },
            condition_expression="attribute_not_exists(order_number)",
        )


class InvoiceNumberGenerator:
    """Allocates sequential invoice numbers per calendar year."""

    def __init__(self, db: DynamoDBService) -> None:
        self._db = db

    def current_seq(self, year: int) -> int:
        """Last issued sequence number for a year (0 if none)."""
        item = self._db.get_item(COUNTERS, {"counter_id": invoice_counter_id(year)})
        if not item:
            return 0
        return int(item.get("seq", 0))

    def reserve(self, year: int) -> tuple[str, dict[str, Any]]:
        """Reserve the next number for a year.

        The returned transaction item only succeeds if nobody else has
        advanced the counter since it was read; on a cancelled transaction
        the caller re-reads and tries again.

        Args:
            year: Calendar year of the invoice issue date

        Returns:
            Tuple of (invoice number, counter update transaction item)
        """
        previous = self.current_seq(year)
        seq = previous + 1
        if previous == 0:
            condition = "attribute_not_exists(seq)"
            values: dict[str, Any] = {":seq": seq}
        else:
            condition = "seq = :previous"
            values = {":seq": seq, ":previous": previous}

        item = self._db.tx_update(
            COUNTERS,
            {"counter_id": invoice_counter_id(year)},
            "SET seq = :seq",
            values,
            condition_expression=condition,
        )
        return format_invoice_number(year, seq), item
