"""
Structured logging setup for the engine.

- Rich console handler for humans
- JSON file handler for downstream ingestion
- Throttling for repetitive cycle warnings (skipped / aborted ticks)
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Set

from rich.logging import RichHandler

LOGGER_NAME = "spreadmaker"


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return str(obj)
    if hasattr(obj, "value"):  # enums
        return obj.value
    return str(obj)


def dumps(payload: Dict[str, Any]) -> str:
    """Compact JSON with decimals kept as exact strings."""
    return json.dumps(payload, separators=(",", ":"), default=_json_default)


class JsonFormatter(logging.Formatter):
    """Compact JSON formatter for structured log ingestion."""

    def format(self, record: logging.LogRecord) -> str:
        ts = record.created
        payload = {
            "ts": ts,
            "ts_iso": datetime.fromtimestamp(ts).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"))


class ThrottledFilter(logging.Filter):
    """
    Filter that throttles repetitive log messages.

    Allows first occurrence, then suppresses duplicates for cooldown_sec.
    A hung feed makes every tick log a skip; only the first one per window
    reaches the console.
    """

    def __init__(self, cooldown_sec: float = 30.0, throttled_events: Optional[Set[str]] = None):
        super().__init__()
        self._cooldown = cooldown_sec
        self._last_seen: Dict[str, float] = {}
        self._throttled_events = throttled_events or {
            "update_cycle_skipped", "update_cycle_aborted",
        }

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        try:
            data = json.loads(msg)
        except (json.JSONDecodeError, TypeError):
            return True
        if not isinstance(data, dict):
            return True
        event = data.get("event", "")
        if event not in self._throttled_events:
            return True

        now = time.time()
        key = f"{event}:{data.get('error_type', '')}"
        last = self._last_seen.get(key, 0.0)
        if now - last < self._cooldown:
            return False
        self._last_seen[key] = now
        return True


def build_logger(
    name: str = LOGGER_NAME,
    level: int = logging.INFO,
    file_path: Optional[str] = "spreadmaker.log",
    throttle_warnings: bool = True,
) -> logging.Logger:
    """
    Build the engine logger.

    Args:
        name: Logger name
        level: Minimum log level
        file_path: Path to JSON log file (None to disable file logging)
        throttle_warnings: Apply throttling filter to the console handler

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Idempotent handler setup
    if logger.handlers:
        for h in logger.handlers:
            h.setLevel(level)
        return logger

    stream_handler = RichHandler(
        rich_tracebacks=False,
        show_time=True,
        show_level=True,
        show_path=False,
        markup=False,
    )
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("%(message)s"))
    if throttle_warnings:
        stream_handler.addFilter(ThrottledFilter(cooldown_sec=30.0))
    logger.addHandler(stream_handler)

    if file_path:
        file_handler = logging.FileHandler(file_path)
        file_handler.setFormatter(JsonFormatter())
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def log_event(
    logger: logging.Logger,
    event: str,
    level: int = logging.INFO,
    **data: Any,
) -> None:
    """
    Log a structured event with proper level.

    Usage:
        log_event(log, "order_placed", side="bid", px=Decimal("100.5"))
    """
    payload = {"event": event, **data}
    logger.log(level, dumps(payload))
