"""
Placement range calculation and random order pricing.

A placement range is the band a new order's price is drawn from. Bid bands
are capped at the spread midpoint and ask bands floored at it, so a placed
bid can never sit above a placed ask.
"""

from __future__ import annotations

import random
from decimal import Decimal
from typing import Callable, Optional, Tuple

from spreadmaker.core.models import PlacementRange, SpreadMargins
from spreadmaker.core.rounding import DIVISION_DECIMALS, divide, multiply, to_decimal

# Returns a Decimal uniformly distributed in [0, 1)
RandomSource = Callable[[], Decimal]


def range_multiplier(percent_range) -> Decimal:
    """Half of the configured percent range as a multiplicative factor."""
    return Decimal(1) + divide(to_decimal(percent_range), Decimal(200))


def compute_range(
    best_price,
    percent_range,
    upper: Optional[Decimal] = None,
    lower: Optional[Decimal] = None,
) -> PlacementRange:
    """
    Symmetric (multiplicative) band around best_price.

    high = best * m and low = best / m with m = 1 + percent_range / 200,
    then high is capped at upper and low floored at lower when given.
    """
    best = to_decimal(best_price)
    m = range_multiplier(percent_range)
    high = multiply(best, m)
    low = divide(best, m)

    if upper is not None and high > upper:
        high = to_decimal(upper)
    if lower is not None and low < lower:
        low = to_decimal(lower)
    return PlacementRange(low=low, high=high)


def compute_side_ranges(margins: SpreadMargins, percent_range) -> Tuple[PlacementRange, PlacementRange]:
    """Bid and ask ranges for one tick, both clamped at the spread midpoint."""
    mid = margins.midpoint
    bid_range = compute_range(margins.highest_bid, percent_range, upper=mid)
    ask_range = compute_range(margins.lowest_ask, percent_range, lower=mid)
    return bid_range, ask_range


def default_random_source(rng: Optional[random.Random] = None) -> RandomSource:
    """Uniform draw with DIVISION_DECIMALS random fractional digits."""
    rng = rng or random.Random()
    scale = 10 ** DIVISION_DECIMALS

    def draw() -> Decimal:
        return Decimal(rng.randrange(scale)).scaleb(-DIVISION_DECIMALS)

    return draw


class OrderPricer:
    """Draws order prices uniformly from a placement range."""

    def __init__(self, random_source: Optional[RandomSource] = None) -> None:
        self._random = random_source or default_random_source()

    def sample_price(self, placement: PlacementRange) -> Decimal:
        u = to_decimal(self._random())
        return placement.low + multiply(u, placement.width)
