"""
Order sizing.

Remaining balance is split evenly across the remaining free slots of a side.
Quote amounts round to 2 fractional digits and base amounts to 18, ties
toward zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from spreadmaker.core.rounding import DECIMAL_CTX, multiply, round_base, round_quote, to_decimal


@dataclass(frozen=True)
class BidAmounts:
    input_quote: Decimal
    output_base: Decimal


@dataclass(frozen=True)
class AskAmounts:
    input_base: Decimal
    output_quote: Decimal


def _free_slots(active: int, max_slots: int) -> Decimal:
    free = max_slots - active
    if free <= 0:
        raise ValueError(f"no free slot: active={active} max={max_slots}")
    return Decimal(free)


def size_bid(price, quote_balance, active_bids: int, max_slots: int) -> BidAmounts:
    """Quote committed to the next bid and the base it buys at price."""
    slots = _free_slots(active_bids, max_slots)
    input_quote = round_quote(DECIMAL_CTX.divide(to_decimal(quote_balance), slots))
    output_base = round_base(DECIMAL_CTX.divide(input_quote, to_decimal(price)))
    return BidAmounts(input_quote=input_quote, output_base=output_base)


def size_ask(price, base_balance, active_asks: int, max_slots: int) -> AskAmounts:
    """Base committed to the next ask and the quote it sells for at price."""
    slots = _free_slots(active_asks, max_slots)
    input_base = round_base(DECIMAL_CTX.divide(to_decimal(base_balance), slots))
    output_quote = round_quote(multiply(input_base, to_decimal(price)))
    return AskAmounts(input_base=input_base, output_quote=output_quote)
