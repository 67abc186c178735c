"""
OrderPlacer: fills empty slots of a side with synthetic orders.

Each placement is sized from the balance left after the previous one, so
the free balance is split evenly over the free slots and the last slot
takes whatever remains.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, List, Optional

from spreadmaker.core.models import Order, PlacementRange, Side
from spreadmaker.execution import ledger
from spreadmaker.execution.order_book import EngineState
from spreadmaker.infra.logging_cfg import LOGGER_NAME, dumps
from spreadmaker.strategy.placement import OrderPricer
from spreadmaker.strategy.sizing import size_ask, size_bid

log = logging.getLogger(LOGGER_NAME)


class OrderPlacer:
    def __init__(
        self,
        allowed_active_orders: int,
        pricer: Optional[OrderPricer] = None,
        log_event: Optional[Callable[..., None]] = None,
    ) -> None:
        self.allowed_active_orders = allowed_active_orders
        self.pricer = pricer or OrderPricer()
        self._log_event = log_event or self._default_log

    def _default_log(self, event: str, **kwargs: Any) -> None:
        log.info(dumps({"event": event, **kwargs}))

    def place_order(self, state: EngineState, side: Side, placement: PlacementRange) -> Order:
        """Price, size, debit and book a single order."""
        price = self.pricer.sample_price(placement)
        active = state.book.count(side)
        if side is Side.BID:
            bid = size_bid(price, state.account.quote, active, self.allowed_active_orders)
            order = Order(Side.BID, price, bid.input_quote, bid.output_base)
        else:
            ask = size_ask(price, state.account.base, active, self.allowed_active_orders)
            order = Order(Side.ASK, price, ask.input_base, ask.output_quote)
        order.placed_at_ms = int(time.time() * 1000)

        state.book.add(order)
        ledger.debit(state.account, order.input_asset, order.input_amount)
        self._log_event(
            "order_placed",
            side=side.value,
            px=str(price),
            input=str(order.input_amount),
            output=str(order.output_amount),
        )
        return order

    def top_up(self, state: EngineState, side: Side, placement: PlacementRange) -> List[Order]:
        """Place orders until the side holds allowed_active_orders."""
        placed: List[Order] = []
        free = self.allowed_active_orders - state.book.count(side)
        for _ in range(max(0, free)):
            placed.append(self.place_order(state, side, placement))
        return placed
