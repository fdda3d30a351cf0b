#!/usr/bin/env python3
"""
Run one Alpaca feed and print each emission as a JSON line.

Streams run under the reconnect supervisor; the snapshot feed never fails.

Usage:
  # Account trade updates
  python -m apps.alpaca_feeds.main account

  # Trades, quotes and bars for two symbols, stop after 50 batches
  python -m apps.alpaca_feeds.main market AAPL MSFT --max-emissions 50

  # Account snapshots every 5 seconds
  python -m apps.alpaca_feeds.main snapshots --interval-ms 5000

Exit codes:
  0: Feed finished (max emissions reached)
  2: Stream gave up after repeated transport failures
  3: Configuration errors
"""

import argparse
import asyncio
import json
import sys
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any, Optional, TextIO

from config.settings import get_settings
from libs.alpaca import AccountSnapshot, AlpacaClient, StreamConnectionError
from libs.common.logging import configure_logging, get_logger

logger = get_logger(__name__)

SERVICE_NAME = "alpaca_feeds"


def parse_arguments(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print an Alpaca feed as JSON lines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "feed",
        choices=["account", "market", "snapshots"],
        help="Feed to run",
    )
    parser.add_argument(
        "symbols",
        nargs="*",
        default=[],
        help="Symbols for the market feed (e.g., AAPL MSFT)",
    )
    parser.add_argument(
        "--max-emissions",
        type=int,
        default=None,
        help="Stop after this many emissions (default: run forever)",
    )
    parser.add_argument(
        "--interval-ms",
        type=int,
        default=None,
        help="Snapshot interval in milliseconds (default: POLL_INTERVAL_MS)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable DEBUG logging")

    args = parser.parse_args(argv)
    if args.feed == "market" and not args.symbols:
        parser.error("the market feed needs at least one symbol")
    return args


def _dump(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, list):
        return [_dump(item) for item in value]
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return str(value)


def serialize(emission: list[Any] | AccountSnapshot) -> str:
    """Render one emission (envelope batch or snapshot) as a JSON line."""
    if isinstance(emission, AccountSnapshot):
        payload: Any = {
            "captured_at": emission.captured_at.isoformat(),
            "account": _dump(emission.account),
            "positions": _dump(emission.positions),
            "orders": _dump(emission.orders),
        }
    else:
        payload = _dump(emission)
    return json.dumps(payload, default=str)


def select_feed(client: AlpacaClient, args: argparse.Namespace) -> AsyncIterator[Any]:
    if args.feed == "account":
        return client.supervised_account_stream()
    if args.feed == "market":
        return client.supervised_stock_price(args.symbols)
    return client.account_snapshots(interval_ms=args.interval_ms)


async def run_feed(
    client: AlpacaClient,
    args: argparse.Namespace,
    out: TextIO = sys.stdout,
) -> int:
    """
    Print emissions until ``max_emissions`` is reached or the feed gives up.

    Returns:
        Exit code (0 finished, 2 stream gave up)
    """
    emitted = 0
    try:
        async with aclosing(select_feed(client, args)) as feed:
            async for emission in feed:
                print(serialize(emission), file=out, flush=True)
                emitted += 1
                if args.max_emissions is not None and emitted >= args.max_emissions:
                    break
    except StreamConnectionError as e:
        logger.error(f"{args.feed} feed stopped: {e}")
        return 2

    logger.info(f"{args.feed} feed finished after {emitted} emissions")
    return 0


async def main(argv: Optional[list[str]] = None) -> int:
    args = parse_arguments(argv)
    settings = get_settings()
    secret = settings.alpaca_api_secret_key.get_secret_value()

    configure_logging(
        service_name=SERVICE_NAME,
        log_level="DEBUG" if args.verbose else settings.log_level,
        redact=[secret],
    )

    if not settings.alpaca_api_key_id or not secret:
        logger.error("ALPACA_API_KEY_ID and ALPACA_API_SECRET_KEY must be set")
        return 3

    client = AlpacaClient.from_settings(settings)
    return await run_feed(client, args)


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(0)
