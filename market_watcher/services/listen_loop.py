"""
Heartbeat & read loop.
A reader task and a keep-alive task share one session; the first one to fail
ends the loop, the session is closed and the error goes back to the caller.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from market_watcher.errors import NetworkError
from market_watcher.services.feed_session import FeedSession
from market_watcher.services.payload_decoder import DecodeKind, DecodeResult, handle_message
from market_watcher.util.async_tools import race

logger = logging.getLogger("market_watcher.listen")

PING_FRAME = "ping"


@dataclass
class WatcherStats:
    """Counters for one watcher process."""
    messages_received: int = 0
    items_logged: int = 0
    ignored: int = 0
    non_json: int = 0
    parse_errors: int = 0
    pings_sent: int = 0
    last_ping: float = 0.0
    connects: int = 0
    failures: int = 0

    def record(self, result: DecodeResult) -> None:
        if result.kind is DecodeKind.ITEM:
            self.items_logged += 1
        elif result.kind is DecodeKind.IGNORED:
            self.ignored += 1
        elif result.kind is DecodeKind.NOT_JSON:
            self.non_json += 1
        else:
            self.parse_errors += 1

    def as_dict(self) -> Dict[str, Any]:
        return {
            "messages_received": self.messages_received,
            "items_logged": self.items_logged,
            "ignored": self.ignored,
            "non_json": self.non_json,
            "parse_errors": self.parse_errors,
            "pings_sent": self.pings_sent,
            "last_ping": self.last_ping,
            "connects": self.connects,
            "failures": self.failures,
        }


MessageHandler = Callable[[Union[str, bytes]], DecodeResult]


async def _read_loop(session: FeedSession, on_message: MessageHandler, stats: WatcherStats) -> None:
    # Frames are handled one at a time, in arrival order
    while True:
        raw = await session.receive()
        stats.messages_received += 1
        try:
            result = on_message(raw)
        except Exception as e:
            logger.error(f"[listen] Error processing message: {e}")
            stats.parse_errors += 1
            continue
        stats.record(result)


async def _heartbeat_loop(session: FeedSession, interval: float, stats: WatcherStats,
                          clock: Callable[[], float]) -> None:
    while True:
        await asyncio.sleep(interval)
        await session.send(PING_FRAME)
        stats.pings_sent += 1
        stats.last_ping = clock()
        logger.debug(f"[listen] Ping sent (total: {stats.pings_sent})")


async def listen(session: FeedSession,
                 ping_interval: float,
                 stats: Optional[WatcherStats] = None,
                 on_message: MessageHandler = handle_message,
                 clock: Callable[[], float] = time.time) -> None:
    """
    Consume the session until the reader or the heartbeat fails.

    Always closes the session before returning control.

    Raises:
        NetworkError: the failure that ended the loop
    """
    stats = stats if stats is not None else WatcherStats()
    reader = asyncio.create_task(_read_loop(session, on_message, stats), name="feed-reader")
    heartbeat = asyncio.create_task(_heartbeat_loop(session, ping_interval, stats, clock), name="feed-heartbeat")

    try:
        winner, _ = await race([reader, heartbeat])
    finally:
        await session.close()

    error = winner.exception()
    if isinstance(error, NetworkError):
        logger.warning(f"[listen] {winner.get_name()} stopped: {error.message}")
        raise error
    if error is None:
        raise NetworkError(f"{winner.get_name()} ended unexpectedly")
    raise NetworkError(f"{winner.get_name()} failed: {error}") from error
