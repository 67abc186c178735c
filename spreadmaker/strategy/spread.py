"""
Spread analysis over a raw order book snapshot.
"""

from __future__ import annotations

from typing import Any, Iterable, List

from spreadmaker.core.errors import EmptySide, MalformedSnapshot
from spreadmaker.core.models import RawMarketEntry, Side, SpreadMargins


def parse_snapshot(rows: Any) -> List[RawMarketEntry]:
    """Convert a decoded JSON payload into market entries."""
    if not isinstance(rows, list):
        raise MalformedSnapshot(f"expected JSON array, got {type(rows).__name__}")
    return [RawMarketEntry.from_row(r) for r in rows]


def compute_spread(entries: Iterable[RawMarketEntry]) -> SpreadMargins:
    """
    Return the highest bid and lowest ask present in the snapshot.

    Raises:
        EmptySide: if either side has no entries (bids are checked first)
    """
    bids: List[RawMarketEntry] = []
    asks: List[RawMarketEntry] = []
    for entry in entries:
        if entry.side is Side.ASK:
            asks.append(entry)
        else:
            bids.append(entry)

    if not bids:
        raise EmptySide(Side.BID.value)
    if not asks:
        raise EmptySide(Side.ASK.value)

    return SpreadMargins(
        highest_bid=max(e.price for e in bids),
        lowest_ask=min(e.price for e in asks),
    )
