"""
Money helpers.

All amounts are Decimal. Parsing of user-entered amounts is permissive on
purpose: anything that does not parse to a finite number counts as zero.
That policy lives here and nowhere else.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0")

# Residue below which an allocation walk is considered finished.
ALLOCATION_EPSILON = Decimal("0.0001")

# Tolerance for a split payment to count as matching its target.
SPLIT_TOLERANCE = Decimal("0.01")


def parse_amount(value: Any) -> Decimal:
    """
    Parse a user-entered amount.

    Accepts strings, ints, floats and Decimals. Blank, malformed or
    non-finite input yields Decimal("0") instead of raising.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return ZERO
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return ZERO
    if not amount.is_finite():
        return ZERO
    return amount


def to_decimal(value: Any) -> Decimal:
    """Strict conversion for amounts that come from trusted records."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round_money(value: Any) -> Decimal:
    """Round to 2 decimal places, half up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(value: Any) -> str:
    """Format with exactly 2 decimals, e.g. 12.5 -> '12.50'."""
    return f"{round_money(value):.2f}"


def format_money(value: Any, currency: str = "Rs.") -> str:
    """Format with a currency label, e.g. 'Rs. 12.50'."""
    amount = round_money(value)
    if amount < 0:
        return f"-{currency} {format_amount(-amount)}"
    return f"{currency} {format_amount(amount)}"
