"""
PositionReconciler: approximate fill detection against the moving market.

A resting bid counts as filled once the market's best bid drops below its
price (price > highest_bid); a resting ask once the best ask rises above
it (price < lowest_ask). There is no price-time priority and no partial
fill. Capital recycling depends on this exact rule.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, List, Optional

from spreadmaker.core.models import FreedAssets, Order
from spreadmaker.execution.order_book import ActiveOrderBook
from spreadmaker.infra.logging_cfg import LOGGER_NAME, dumps

log = logging.getLogger(LOGGER_NAME)


@dataclass
class ReconcileResult:
    freed: FreedAssets = field(default_factory=FreedAssets)
    filled_bids: List[Order] = field(default_factory=list)
    filled_asks: List[Order] = field(default_factory=list)

    @property
    def fill_count(self) -> int:
        return len(self.filled_bids) + len(self.filled_asks)


def reconcile(book: ActiveOrderBook, highest_bid: Decimal, lowest_ask: Decimal) -> ReconcileResult:
    """
    Remove orders judged filled and total what they release.

    Filled bids release their base output, filled asks their quote output.
    Retained orders keep their relative order.
    """
    result = ReconcileResult()

    kept_bids: List[Order] = []
    for order in book.bids:
        if order.price > highest_bid:
            result.filled_bids.append(order)
            result.freed.base += order.output_amount
        else:
            kept_bids.append(order)

    kept_asks: List[Order] = []
    for order in book.asks:
        if order.price < lowest_ask:
            result.filled_asks.append(order)
            result.freed.quote += order.output_amount
        else:
            kept_asks.append(order)

    book.bids[:] = kept_bids
    book.asks[:] = kept_asks
    return result


class PositionReconciler:
    """Runs reconcile() and reports each fill through the log callback."""

    def __init__(self, log_event: Optional[Callable[..., None]] = None) -> None:
        self._log_event = log_event or self._default_log

    def _default_log(self, event: str, **kwargs: Any) -> None:
        log.info(dumps({"event": event, **kwargs}))

    def reconcile(self, book: ActiveOrderBook, highest_bid: Decimal, lowest_ask: Decimal) -> ReconcileResult:
        result = reconcile(book, highest_bid, lowest_ask)
        for order in result.filled_bids + result.filled_asks:
            self._log_event(
                "order_filled",
                side=order.side.value,
                px=str(order.price),
                input=str(order.input_amount),
                output=str(order.output_amount),
            )
        return result
