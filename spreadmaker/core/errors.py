"""
Engine error hierarchy.

EmptySide and FeedUnavailable abort a single update cycle and are retried
on the next tick. Anything else reaching the scheduler is a programmer error.
"""

from __future__ import annotations

from typing import Optional


class EngineError(Exception):
    """Base class for errors raised by the engine."""


class EmptySide(EngineError):
    """Snapshot has no entries on one side of the book."""

    def __init__(self, side: str) -> None:
        self.side = side
        super().__init__(f"No {side}s")


class FeedUnavailable(EngineError):
    """Order book feed failed or answered with a non-200 status."""

    def __init__(self, reason: str, status: Optional[int] = None) -> None:
        self.reason = reason
        self.status = status
        msg = reason if status is None else f"{reason} (status {status})"
        super().__init__(msg)


class MalformedSnapshot(FeedUnavailable):
    """Feed answered but the payload is not a list of [id, price, amount] rows."""


class ConfigError(EngineError, ValueError):
    """Invalid configuration, fatal at startup."""
