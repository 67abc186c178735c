"""
Environment-driven configuration with validation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from dotenv import load_dotenv

from spreadmaker.core.errors import ConfigError
from spreadmaker.core.rounding import round_base, round_quote, to_decimal

DEFAULT_ORDERBOOK_URL = "https://api.deversifi.com/bfx/v2/book/tETHUSD/R0"

_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _raw(key: str) -> Optional[str]:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return None
    return raw.strip()


def _int_env(key: str, default: int) -> int:
    raw = _raw(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc


def _float_env(key: str, default: float) -> float:
    raw = _raw(key)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from exc


def _decimal_env(key: str, default: str) -> Decimal:
    raw = _raw(key) or default
    try:
        value = to_decimal(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a decimal amount, got {raw!r}") from exc
    if not value.is_finite():
        raise ConfigError(f"{key} must be finite, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    orderbook_url: str
    order_range_pct: Decimal
    allowed_active_orders: int
    initial_quote: Decimal
    initial_base: Decimal
    update_interval: float
    balance_interval: float
    http_timeout: float
    log_level: str
    log_file: Optional[str]
    metrics_port: int

    def dump(self) -> dict:
        """Return a dict of settings for sanity checks/logging."""
        return {k: (str(v) if isinstance(v, Decimal) else v) for k, v in self.__dict__.items()}

    @classmethod
    def load(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        log_file = os.getenv("SM_LOG_FILE", "spreadmaker.log").strip()
        cfg = cls(
            orderbook_url=os.getenv("SM_ORDERBOOK_URL", DEFAULT_ORDERBOOK_URL).strip(),
            order_range_pct=_decimal_env("SM_ORDER_RANGE_PCT", "5"),
            allowed_active_orders=_int_env("SM_ALLOWED_ACTIVE_ORDERS", 5),
            # Quantized up front so sizing never has to split sub-precision dust
            initial_quote=round_quote(_decimal_env("SM_ACCOUNT_QUOTE", "2000")),
            initial_base=round_base(_decimal_env("SM_ACCOUNT_BASE", "10")),
            update_interval=_float_env("SM_UPDATE_INTERVAL_SEC", 5.0),
            balance_interval=_float_env("SM_BALANCE_INTERVAL_SEC", 30.0),
            http_timeout=_float_env("SM_HTTP_TIMEOUT", 4.0),
            log_level=os.getenv("SM_LOG_LEVEL", "INFO").strip().upper(),
            log_file=log_file or None,
            metrics_port=_int_env("SM_METRICS_PORT", 0),
        )
        cfg._validate()
        return cfg

    def _validate(self) -> None:
        if not self.orderbook_url.startswith(("http://", "https://")):
            raise ConfigError(f"SM_ORDERBOOK_URL must be an http(s) URL, got {self.orderbook_url!r}")
        if self.order_range_pct < 0:
            raise ConfigError("SM_ORDER_RANGE_PCT must be >= 0")
        if self.allowed_active_orders <= 0:
            raise ConfigError("SM_ALLOWED_ACTIVE_ORDERS must be > 0")
        if self.initial_quote < 0 or self.initial_base < 0:
            raise ConfigError("SM_ACCOUNT_QUOTE and SM_ACCOUNT_BASE must be >= 0")
        if self.update_interval <= 0 or self.balance_interval <= 0:
            raise ConfigError("SM_UPDATE_INTERVAL_SEC and SM_BALANCE_INTERVAL_SEC must be > 0")
        if self.http_timeout <= 0:
            raise ConfigError("SM_HTTP_TIMEOUT must be > 0")
        if self.log_level not in _LEVELS:
            raise ConfigError(f"SM_LOG_LEVEL must be one of {sorted(_LEVELS)}")
        if not 0 <= self.metrics_port <= 65535:
            raise ConfigError("SM_METRICS_PORT must be between 0 and 65535")

    def warnings(self) -> List[str]:
        """Non-fatal findings, logged once the logger is configured."""
        out: List[str] = []
        if self.http_timeout >= self.update_interval:
            out.append(
                f"SM_HTTP_TIMEOUT ({self.http_timeout}s) >= SM_UPDATE_INTERVAL_SEC "
                f"({self.update_interval}s); a slow feed will cause skipped ticks"
            )
        return out

