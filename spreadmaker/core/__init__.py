"""
Core package.

Domain types, decimal rounding helpers and the engine error hierarchy.
"""

from spreadmaker.core.errors import (
    ConfigError,
    EmptySide,
    EngineError,
    FeedUnavailable,
    MalformedSnapshot,
)
from spreadmaker.core.models import (
    Account,
    Asset,
    BalanceSnapshot,
    FreedAssets,
    Order,
    PlacementRange,
    RawMarketEntry,
    Side,
    SpreadMargins,
)
from spreadmaker.core.rounding import round_base, round_quote, to_decimal

__all__ = [
    "Account",
    "Asset",
    "BalanceSnapshot",
    "ConfigError",
    "EmptySide",
    "EngineError",
    "FeedUnavailable",
    "FreedAssets",
    "MalformedSnapshot",
    "Order",
    "PlacementRange",
    "RawMarketEntry",
    "Side",
    "SpreadMargins",
    "round_base",
    "round_quote",
    "to_decimal",
]
