"""
Strategy package - spread analysis, placement ranges, pricing and sizing.

Pure calculations with no side effects; all state changes happen in the
execution layer.
"""

from spreadmaker.strategy.placement import (
    OrderPricer,
    RandomSource,
    compute_range,
    compute_side_ranges,
    default_random_source,
)
from spreadmaker.strategy.sizing import AskAmounts, BidAmounts, size_ask, size_bid
from spreadmaker.strategy.spread import compute_spread, parse_snapshot

__all__ = [
    "AskAmounts",
    "BidAmounts",
    "OrderPricer",
    "RandomSource",
    "compute_range",
    "compute_side_ranges",
    "compute_spread",
    "default_random_source",
    "parse_snapshot",
    "size_ask",
    "size_bid",
]
