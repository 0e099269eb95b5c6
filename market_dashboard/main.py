#!/usr/bin/env python3
"""
Market Dashboard - Bitget public market data in the terminal.

Usage:
    python -m market_dashboard.main --ticker-interval 10 BTCUSDT

Controls:
    q - Quit
    Pair selector - switch instrument (both streams resubscribe)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .config import DashboardConfig


def setup_logging(log_file: str, level: str) -> None:
    """Log to a file; the terminal belongs to the TUI."""
    logging.basicConfig(
        filename=log_file,
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # aiohttp access/client chatter is not useful at INFO
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


async def main(config: DashboardConfig) -> None:
    """Main entry point - the app starts the feed on mount and stops it on exit."""

    # Import here to avoid slow startup for --help
    from .datafeed.bitget_client import BitgetClient
    from .datafeed.feed import DashboardFeed
    from .ui.dashboard_view import run_ui

    logger = logging.getLogger(__name__)
    logger.info(
        "Starting dashboard for %s (tickers every %ss, futures every %ss)",
        config.symbol, config.ticker_interval_sec, config.futures_interval_sec,
    )

    async with BitgetClient(config) as client:
        feed = DashboardFeed(client, config)
        await run_ui(feed)


def cli() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Market Dashboard - Bitget spot ticker, order book, futures and news",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m market_dashboard.main
    python -m market_dashboard.main ETHUSDT --ticker-interval 5
    python -m market_dashboard.main SOLUSDT --log-level DEBUG
        """
    )

    parser.add_argument(
        "symbol",
        nargs="?",
        default="BTCUSDT",
        help="Initially selected spot pair (default: BTCUSDT)"
    )

    parser.add_argument(
        "--quote-coin",
        default="USDT",
        help="Quote coin for the pair listing (default: USDT)"
    )

    parser.add_argument(
        "--ticker-interval",
        type=float,
        default=10.0,
        help="Spot ticker REST poll interval in seconds (default: 10)"
    )

    parser.add_argument(
        "--futures-interval",
        type=float,
        default=15.0,
        help="Futures ticker REST poll interval in seconds (default: 15)"
    )

    parser.add_argument(
        "--log-file",
        default="market_dashboard.log",
        help="Log file (default: market_dashboard.log)"
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)"
    )

    args = parser.parse_args()
    setup_logging(args.log_file, args.log_level)

    config = DashboardConfig(
        symbol=args.symbol.upper(),
        quote_coin=args.quote_coin.upper(),
        ticker_interval_sec=args.ticker_interval,
        futures_interval_sec=args.futures_interval,
    )

    # Run
    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        print("\nShutdown requested.")
        sys.exit(0)


if __name__ == "__main__":
    cli()
