"""
Money helpers for the pricing engine.

All monetary arithmetic is done in Decimal; floats are converted through
their string form so 0.1 stays 0.1.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from fleetops.app.core.exceptions import FareValidationError

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Any, field: str) -> Decimal:
    """
    Convert a numeric input to Decimal.

    Raises:
        FareValidationError: for None, booleans, non-numeric strings, NaN or infinity
    """
    if value is None or isinstance(value, bool):
        raise FareValidationError(field, value, "must be a number")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise FareValidationError(field, value, "must be a number") from None
    else:
        raise FareValidationError(field, value, "must be a number")

    if not result.is_finite():
        raise FareValidationError(field, value, "must be a finite number")
    return result


def non_negative(value: Any, field: str) -> Decimal:
    """Convert to Decimal and reject negatives."""
    result = to_decimal(value, field)
    if result < 0:
        raise FareValidationError(field, value)
    return result


def quantize_money(amount: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_currency(amount: Any, symbol: str = "₹") -> str:
    """
    Format an amount for display: symbol prefix, thousands separator, two decimals.

    Example:
        format_currency(Decimal("1234.5")) -> "₹1,234.50"
    """
    value = quantize_money(to_decimal(amount, "amount"))
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"
