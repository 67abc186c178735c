"""
ActiveOrderBook: open simulated orders per side, and the engine state that
owns it together with the account.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

from spreadmaker.core.models import Account, BalanceSnapshot, Order, Side


@dataclass
class ActiveOrderBook:
    bids: List[Order] = field(default_factory=list)
    asks: List[Order] = field(default_factory=list)

    def orders(self, side: Side) -> List[Order]:
        return self.bids if side is Side.BID else self.asks

    def count(self, side: Side) -> int:
        return len(self.orders(side))

    def add(self, order: Order) -> None:
        self.orders(order.side).append(order)

    def committed(self, side: Side) -> Decimal:
        """Total input amount locked in open orders of a side."""
        return sum((o.input_amount for o in self.orders(side)), Decimal(0))


@dataclass
class EngineState:
    """Everything a single scheduler mutates during an update cycle."""
    account: Account
    book: ActiveOrderBook = field(default_factory=ActiveOrderBook)

    def snapshot(self, timestamp_ms: int = 0) -> BalanceSnapshot:
        """Read-only view; not synchronized with an in-flight cycle."""
        return BalanceSnapshot(
            quote=self.account.quote,
            base=self.account.base,
            open_bids=self.book.count(Side.BID),
            open_asks=self.book.count(Side.ASK),
            committed_quote=self.book.committed(Side.BID),
            committed_base=self.book.committed(Side.ASK),
            timestamp_ms=timestamp_ms,
        )
