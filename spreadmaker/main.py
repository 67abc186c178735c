"""
Entry point wiring all components.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

import httpx

from spreadmaker.config.config import Settings
from spreadmaker.core.errors import ConfigError
from spreadmaker.core.models import Account
from spreadmaker.execution.order_book import EngineState
from spreadmaker.infra.logging_cfg import build_logger, log_event
from spreadmaker.infra.orderbook_feed import OrderbookFeed
from spreadmaker.monitoring.metrics_rich import RichMetrics, start_metrics_server
from spreadmaker.orchestrator.scheduler import CycleOutcome, Scheduler, SchedulerConfig


def build_scheduler(cfg: Settings, feed: OrderbookFeed, metrics: Optional[RichMetrics] = None) -> Scheduler:
    """Fresh engine state from the configured initial account."""
    state = EngineState(Account(quote=cfg.initial_quote, base=cfg.initial_base))
    config = SchedulerConfig(
        update_interval_sec=cfg.update_interval,
        balance_interval_sec=cfg.balance_interval,
        allowed_active_orders=cfg.allowed_active_orders,
        order_range_pct=cfg.order_range_pct,
    )
    return Scheduler(feed.fetch, state, config, metrics=metrics)


async def main(once: bool = False) -> int:
    cfg = Settings.load()
    log = build_logger(level=getattr(logging, cfg.log_level), file_path=cfg.log_file)

    metrics = RichMetrics()
    start_metrics_server(metrics, cfg.metrics_port)

    client = httpx.AsyncClient(timeout=cfg.http_timeout)
    feed = OrderbookFeed(cfg.orderbook_url, client=client)
    scheduler = build_scheduler(cfg, feed, metrics)
    log_event(log, "startup", once=once, **cfg.dump())
    for warning in cfg.warnings():
        log_event(log, "config_warning", level=logging.WARNING, detail=warning)

    try:
        if once:
            result = await scheduler.run_once()
            return 0 if result.outcome is CycleOutcome.COMPLETED else 1

        loop = asyncio.get_running_loop()
        # Windows doesn't support add_signal_handler, so rely on KeyboardInterrupt handling
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, scheduler.stop)
            except NotImplementedError:
                pass
        await scheduler.run()
        return 0
    finally:
        log.info("Closing connections...")
        await feed.close()
        await client.aclose()
        log.info("Shutdown complete")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="spreadmaker",
        description="Simulated single-pair market maker over a public order book",
    )
    parser.add_argument("--once", action="store_true",
                        help="Run a single update cycle and balance report, then exit")
    return parser.parse_args(argv)


def cli(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    try:
        code = asyncio.run(main(once=args.once))
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(2)
    except KeyboardInterrupt:
        print("\nEngine stopped by user")
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    cli()
