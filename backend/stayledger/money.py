"""Integer money helpers (whole BDT)."""

from decimal import ROUND_HALF_UP, Decimal


def percent_of(amount: int, percent: int) -> int:
    """Return ``percent``% of ``amount`` rounded half-up to a whole unit."""
    value = Decimal(amount) * Decimal(percent) / Decimal(100)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def format_amount(amount: int) -> str:
    return f"৳{amount:,}"
