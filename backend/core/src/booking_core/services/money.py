"""Deposit and balance arithmetic on integer minor currency units.

No floating point anywhere: every function takes and returns ``int``.
"""

DEFAULT_DEPOSIT_PERCENT = 30

_CURRENCY_SYMBOLS = {"czk": "Kč", "eur": "€"}


def deposit(total: int, percent: int = DEFAULT_DEPOSIT_PERCENT) -> int:
    """Deposit for a total, rounded half up.

    Args:
        total: Order total in minor units
        percent: Deposit percentage (0-100)

    Returns:
        Deposit in minor units

    Example:
        >>> deposit(450000)
        135000
        >>> deposit(999999)
        300000
    """
    return (total * percent + 50) // 100


def balance(total: int, deposit_amount: int) -> int:
    """Remaining balance after the deposit."""
    return total - deposit_amount


def is_full_refund(charged: int, refunded: int) -> bool:
    """Whether a refund returns the entire charged amount."""
    return refunded == charged


def format_amount(amount: int, currency: str = "czk") -> str:
    """Format minor units for display, e.g. ``450000`` -> ``4 500,00 Kč``.

    Uses Czech conventions: space as thousands separator and comma as
    decimal separator.
    """
    sign = "-" if amount < 0 else ""
    major, minor = divmod(abs(amount), 100)
    grouped = f"{major:,}".replace(",", " ")
    symbol = _CURRENCY_SYMBOLS.get(currency.lower(), currency.upper())
    return f"{sign}{grouped},{minor:02d} {symbol}"
