"""
Infrastructure package.

This package contains the order book HTTP client and logging configuration.
"""

from spreadmaker.infra.logging_cfg import build_logger, log_event
from spreadmaker.infra.orderbook_feed import OrderbookFeed

__all__ = [
    "OrderbookFeed",
    "build_logger",
    "log_event",
]
