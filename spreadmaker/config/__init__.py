"""
Configuration package.
"""

from spreadmaker.config.config import DEFAULT_ORDERBOOK_URL, Settings

__all__ = ["DEFAULT_ORDERBOOK_URL", "Settings"]
