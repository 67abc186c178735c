"""
Domain types shared by the strategy, execution and orchestration layers.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Sequence

from spreadmaker.core.errors import MalformedSnapshot
from spreadmaker.core.rounding import divide, to_decimal


class Side(str, Enum):
    BID = "bid"
    ASK = "ask"


class Asset(str, Enum):
    QUOTE = "quote"
    BASE = "base"


@dataclass(frozen=True)
class RawMarketEntry:
    """One order book row: (id, price, signed amount). Negative amount is an ask."""
    id: Any
    price: Decimal
    signed_amount: Decimal

    @property
    def side(self) -> Side:
        return Side.ASK if self.signed_amount < 0 else Side.BID

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "RawMarketEntry":
        if isinstance(row, (str, bytes)) or not isinstance(row, Sequence) or len(row) != 3:
            raise MalformedSnapshot(f"expected [id, price, amount] row, got {row!r}")
        try:
            price = to_decimal(row[1])
            amount = to_decimal(row[2])
        except (TypeError, ValueError) as exc:
            raise MalformedSnapshot(f"bad numeric field in row {row!r}") from exc
        if not price.is_finite() or not amount.is_finite():
            raise MalformedSnapshot(f"non-finite value in row {row!r}")
        if price <= 0:
            raise MalformedSnapshot(f"non-positive price in row {row!r}")
        return cls(id=row[0], price=price, signed_amount=amount)


@dataclass(frozen=True)
class SpreadMargins:
    highest_bid: Decimal
    lowest_ask: Decimal

    @property
    def midpoint(self) -> Decimal:
        return divide(self.highest_bid + self.lowest_ask, Decimal(2))


@dataclass(frozen=True)
class PlacementRange:
    low: Decimal
    high: Decimal

    @property
    def width(self) -> Decimal:
        return self.high - self.low


@dataclass
class Order:
    """
    Simulated resting order.

    For a bid, input_amount is quote committed and output_amount is base
    expected. For an ask it is the other way round.
    """
    side: Side
    price: Decimal
    input_amount: Decimal
    output_amount: Decimal
    placed_at_ms: int = 0

    @property
    def input_asset(self) -> Asset:
        return Asset.QUOTE if self.side is Side.BID else Asset.BASE

    @property
    def output_asset(self) -> Asset:
        return Asset.BASE if self.side is Side.BID else Asset.QUOTE


@dataclass
class Account:
    quote: Decimal = Decimal(0)
    base: Decimal = Decimal(0)

    def balance(self, asset: Asset) -> Decimal:
        return self.quote if asset is Asset.QUOTE else self.base


@dataclass
class FreedAssets:
    quote: Decimal = Decimal(0)
    base: Decimal = Decimal(0)

    @property
    def is_empty(self) -> bool:
        return self.quote == 0 and self.base == 0


@dataclass(frozen=True)
class BalanceSnapshot:
    """Point-in-time view of balances and open orders. May be torn mid-cycle."""
    quote: Decimal
    base: Decimal
    open_bids: int
    open_asks: int
    committed_quote: Decimal
    committed_base: Decimal
    timestamp_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "quote": str(self.quote),
            "base": str(self.base),
            "open_bids": self.open_bids,
            "open_asks": self.open_asks,
            "committed_quote": str(self.committed_quote),
            "committed_base": str(self.committed_base),
        }
