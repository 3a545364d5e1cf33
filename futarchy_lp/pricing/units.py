"""
Decimal-safe conversions between human token amounts and base units.

All conversions floor toward zero. Arithmetic runs in a local decimal
context wide enough for any uint256 value.
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext
from typing import Union

from ..errors import PriceComputationError

# Enough significant digits for 2**256
DECIMAL_PRECISION = 78

Numeric = Union[Decimal, int, float, str]


def to_decimal(value: Numeric) -> Decimal:
    """Convert a numeric value to Decimal. Floats go through str so 0.1 stays 0.1."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise PriceComputationError(f"Not a numeric amount: {value!r}")
    try:
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise PriceComputationError(f"Not a numeric amount: {value!r}")


def _check_decimals(decimals: int):
    if decimals < 0:
        raise PriceComputationError(f"Token decimals must not be negative: {decimals}")


def to_base_units(amount: Numeric, decimals: int) -> int:
    """
    Render a human amount as integer base units, flooring toward zero.

    Args:
        amount: Human-readable amount (e.g. Decimal("1.5"))
        decimals: Token decimals

    Returns:
        Integer amount of smallest units

    Raises:
        PriceComputationError: If the amount is negative or not finite
    """
    _check_decimals(decimals)
    value = to_decimal(amount)
    if not value.is_finite():
        raise PriceComputationError(f"Amount must be finite: {amount}")
    if value < 0:
        raise PriceComputationError(f"Amount must not be negative: {amount}")

    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return int(value.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))


def from_base_units(units: int, decimals: int) -> Decimal:
    """Convert integer base units back to a human Decimal amount."""
    _check_decimals(decimals)
    if units < 0:
        raise PriceComputationError(f"Units must not be negative: {units}")

    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return Decimal(units).scaleb(-decimals)


def scale_units(units: int, from_decimals: int, to_decimals: int) -> int:
    """Rescale base units between two decimal counts, flooring toward zero."""
    _check_decimals(from_decimals)
    _check_decimals(to_decimals)
    if units < 0:
        raise PriceComputationError(f"Units must not be negative: {units}")

    if to_decimals >= from_decimals:
        return units * 10 ** (to_decimals - from_decimals)
    return units // 10 ** (from_decimals - to_decimals)


def format_units(units: int, decimals: int) -> str:
    """Human-readable rendering of base units for logs."""
    value = from_base_units(units, decimals)
    if value == 0:
        return "0"
    return f"{value.normalize():f}"
