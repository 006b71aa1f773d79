"""
Market watcher - main entry point.

Subscribes to the market's new-items feed and writes every listing
to a timestamped log file until the retry budget runs out.
"""

import argparse
import asyncio
import logging
import sys

from market_watcher.config import load_config, redacted
from market_watcher.errors import ConfigurationError
from market_watcher.observability.logs import attach_console, create_log_sink
from market_watcher.services.supervisor import MarketWatcher

logger = logging.getLogger("market_watcher.main")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Log new item listings from the market feed")
    parser.add_argument("--log-dir", help="Directory for the log file (default: WATCHER_LOG_DIR or ./logs)")
    parser.add_argument("--log-level", help="Log level (default: WATCHER_LOG_LEVEL or INFO)")
    parser.add_argument("--console", action="store_true", help="Also echo log records to stderr")
    return parser.parse_args(argv)


async def run(watcher: MarketWatcher) -> int:
    terminal = await watcher.run()
    logger.critical(f"Watcher terminated: {terminal.message} {terminal.details}")
    return 1


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        config = load_config()
    except ConfigurationError as e:
        print(f"[CONFIG] {e.message}", file=sys.stderr)
        return 2

    log_dir = args.log_dir or config.log_dir
    log_level = (args.log_level or config.log_level).upper()
    try:
        path = create_log_sink(log_dir, log_level)
    except (OSError, ValueError) as e:
        print(f"Logger creation failed: {e}", file=sys.stderr)
        return 1
    if args.console:
        attach_console(log_level)

    logger.info(f"Starting market watcher, logging to {path}")
    logger.info(f"Config: {redacted(config)}")

    try:
        return asyncio.run(run(MarketWatcher(config)))
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")
        return 130


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
