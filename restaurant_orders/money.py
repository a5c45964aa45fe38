"""
Money helpers.

Amounts are stored as two-place decimals but all arithmetic happens on
integer minor units (cents). Convert at the edges only.
"""

from decimal import Decimal, ROUND_HALF_UP

CENTS = Decimal('0.01')
ZERO = Decimal('0.00')

# Largest amount a DecimalField(max_digits=10, decimal_places=2) column holds
MAX_MINOR = 99_999_999_99


def to_minor(amount) -> int:
    """Decimal/str/int amount -> integer cents, rounding half up."""
    value = Decimal(str(amount)).quantize(CENTS, rounding=ROUND_HALF_UP)
    return int(value * 100)


def from_minor(minor: int) -> Decimal:
    return (Decimal(minor) / 100).quantize(CENTS)


def percent_of(minor: int, rate) -> int:
    """``rate`` percent of ``minor`` cents, rounded half up to whole cents."""
    exact = Decimal(minor) * Decimal(str(rate)) / Decimal(100)
    return int(exact.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def line_total(quantity: int, unit_price) -> int:
    return quantity * to_minor(unit_price)


def as_str(minor: int) -> str:
    return str(from_minor(minor))


def fits(minor: int) -> bool:
    """True when ``minor`` cents can be stored in an amount column."""
    return 0 <= minor <= MAX_MINOR
