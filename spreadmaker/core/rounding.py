"""
Decimal rounding helpers.

Quote amounts carry 2 fractional digits, base amounts carry 18.
Ties round toward zero (ROUND_HALF_DOWN) when sizing orders.
"""

from __future__ import annotations

from decimal import Context, Decimal, ROUND_HALF_DOWN, ROUND_HALF_UP, InvalidOperation
from typing import Any

QUOTE_DECIMALS = 2
BASE_DECIMALS = 18
# Fractional digits kept by plain division (band edges, midpoint)
DIVISION_DECIMALS = 20

# Wide enough that quantizing to 18-20 fractional digits never hits the
# precision limit for realistic prices.
DECIMAL_CTX = Context(prec=60, rounding=ROUND_HALF_UP)

_QUOTE_EXP = Decimal(1).scaleb(-QUOTE_DECIMALS)
_BASE_EXP = Decimal(1).scaleb(-BASE_DECIMALS)
_DIV_EXP = Decimal(1).scaleb(-DIVISION_DECIMALS)


def to_decimal(value: Any) -> Decimal:
    """Convert ints, strings, floats and Decimals without binary float drift."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a numeric amount")
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"not a decimal amount: {value!r}") from exc


def round_quote(value: Decimal) -> Decimal:
    return value.quantize(_QUOTE_EXP, rounding=ROUND_HALF_DOWN, context=DECIMAL_CTX)


def round_base(value: Decimal) -> Decimal:
    return value.quantize(_BASE_EXP, rounding=ROUND_HALF_DOWN, context=DECIMAL_CTX)


def divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """
    Plain division carried to DIVISION_DECIMALS fractional digits, half-up.

    Results that terminate earlier keep their natural exponent, so
    divide(10, 2) is 5 and not 5.00000000000000000000.
    """
    q = DECIMAL_CTX.divide(numerator, denominator)
    if q.as_tuple().exponent < -DIVISION_DECIMALS:
        q = q.quantize(_DIV_EXP, rounding=ROUND_HALF_UP, context=DECIMAL_CTX)
    return q


def multiply(a: Decimal, b: Decimal) -> Decimal:
    return DECIMAL_CTX.multiply(a, b)
