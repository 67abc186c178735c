"""
Prometheus metrics for the engine.

Organized into: cycles, orders, balances.
"""

from decimal import Decimal
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server

from spreadmaker.core.models import BalanceSnapshot


class RichMetrics:
    """Counters and gauges for one engine instance."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        reg = registry or CollectorRegistry()

        # === Cycle Metrics ===
        self.cycles_total = Counter(
            'update_cycles_total',
            'Update cycles by outcome',
            labelnames=['outcome'],
            registry=reg
        )
        self.cycle_errors = Counter(
            'update_cycle_errors_total',
            'Aborted update cycles by error type',
            labelnames=['error_type'],
            registry=reg
        )
        self.cycle_duration_ms = Histogram(
            'update_cycle_duration_ms',
            'Update cycle duration (milliseconds)',
            buckets=[10, 50, 100, 250, 500, 1000, 2500, 5000],
            registry=reg
        )

        # === Order Metrics ===
        self.orders_placed = Counter(
            'orders_placed_total',
            'Simulated orders placed',
            labelnames=['side'],
            registry=reg
        )
        self.orders_filled = Counter(
            'orders_filled_total',
            'Simulated orders judged filled',
            labelnames=['side'],
            registry=reg
        )
        self.open_orders = Gauge(
            'open_orders',
            'Open simulated orders',
            labelnames=['side'],
            registry=reg
        )

        # === Market Metrics ===
        self.best_price = Gauge(
            'best_price',
            'Best price seen in the last snapshot',
            labelnames=['side'],
            registry=reg
        )

        # === Balance Metrics ===
        self.balance = Gauge(
            'account_balance',
            'Free account balance',
            labelnames=['asset'],
            registry=reg
        )
        self.committed = Gauge(
            'committed_balance',
            'Balance locked in open orders',
            labelnames=['asset'],
            registry=reg
        )

        self.registry = reg

    def get_registry(self):
        """Return the Prometheus registry for export."""
        return self.registry

    def record_balances(self, snap: BalanceSnapshot) -> None:
        self.balance.labels(asset="quote").set(_f(snap.quote))
        self.balance.labels(asset="base").set(_f(snap.base))
        self.committed.labels(asset="quote").set(_f(snap.committed_quote))
        self.committed.labels(asset="base").set(_f(snap.committed_base))
        self.open_orders.labels(side="bid").set(snap.open_bids)
        self.open_orders.labels(side="ask").set(snap.open_asks)


def _f(value: Decimal) -> float:
    # Gauges are float-only; the ledger itself never leaves Decimal
    return float(value)


def start_metrics_server(metrics: RichMetrics, port: int) -> None:
    """Expose /metrics on port; 0 disables the endpoint."""
    if port > 0:
        start_http_server(port, registry=metrics.get_registry())
