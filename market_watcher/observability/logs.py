"""
Log sink setup.
One fresh, timestamped file per process start under the log directory.
"""

import logging
import os
import sys
from datetime import datetime
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ROOT_LOGGER = "market_watcher"

logger = logging.getLogger(__name__)


def create_log_sink(log_dir: str = "logs", level: str = "INFO", now: Optional[datetime] = None) -> str:
    """
    Create logs/market_watcher_YYYYMMDD_HHMMSS.log and route the watcher loggers to it.

    Returns:
        Path of the created file

    Raises:
        OSError: directory or file could not be created
    """
    os.makedirs(log_dir, exist_ok=True)
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    path = os.path.join(log_dir, f"market_watcher_{stamp}.log")

    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)
    root.addHandler(handler)

    logger.info(f"Log sink created: {path}")
    return path


def attach_console(level: str = "INFO") -> None:
    """Echo watcher records to stderr as well."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.setLevel(level)
    logging.getLogger(ROOT_LOGGER).addHandler(handler)


def detach_handlers() -> None:
    """Close and remove every handler on the watcher logger."""
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
