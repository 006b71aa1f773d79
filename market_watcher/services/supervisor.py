"""
Reconnection supervisor.
Outer control loop: keep a valid token, (re)connect the feed, listen, and
apply a bounded retry budget with a fixed delay between attempts.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from market_watcher.config import WatcherConfig
from market_watcher.errors import NetworkError, RetriesExhaustedError, WatcherError, create_structured_error_response
from market_watcher.services.feed_session import FeedSession
from market_watcher.services.listen_loop import WatcherStats, listen
from market_watcher.services.token_manager import TokenManager

logger = logging.getLogger("market_watcher.supervisor")


class WatcherState(str, Enum):
    UNINITIALIZED = "uninitialized"
    TOKEN_VALID = "token_valid"
    CONNECTED = "connected"
    LISTENING = "listening"
    FAILED = "failed"
    TERMINATED = "terminated"


@dataclass
class WatcherContext:
    """Mutable watcher state, owned by one supervisor."""
    state: WatcherState = WatcherState.UNINITIALIZED
    retries: int = 0
    session: Optional[FeedSession] = None
    listen_started: float = 0.0
    last_error: Optional[WatcherError] = None
    stats: WatcherStats = field(default_factory=WatcherStats)


class MarketWatcher:
    """Drives the token → connect → listen cycle until the retry budget runs out."""

    def __init__(self, config: WatcherConfig,
                 token_manager: Optional[TokenManager] = None,
                 connect: Callable[..., Awaitable[FeedSession]] = FeedSession.connect,
                 listen_fn: Callable[..., Awaitable[None]] = listen,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
                 clock: Callable[[], float] = time.time):
        self.config = config
        self.clock = clock
        self.token_manager = token_manager or TokenManager(config, clock=clock)
        self._connect = connect
        self._listen = listen_fn
        self._sleep = sleep
        self.ctx = WatcherContext()

    async def run(self) -> RetriesExhaustedError:
        """
        Loop forever; only returns once the retry budget is spent.

        Returns:
            RetriesExhaustedError: terminal state, the driver decides how to exit
        """
        self.ctx.retries = 0
        try:
            while True:
                error = await self._cycle()
                terminal = await self._on_failure(error)
                if terminal is not None:
                    return terminal
        finally:
            await self.token_manager.aclose()

    async def _cycle(self) -> WatcherError:
        """One token → connect → listen pass. Returns the error that ended it."""
        token, error = await self.token_manager.ensure_token()
        if error is not None:
            return error
        self.ctx.state = WatcherState.TOKEN_VALID

        try:
            session = await self._connect(self.config, token.value)
        except NetworkError as e:
            return e
        self.ctx.session = session
        self.ctx.state = WatcherState.CONNECTED
        self.ctx.stats.connects += 1

        self.ctx.state = WatcherState.LISTENING
        self.ctx.listen_started = self.clock()
        try:
            await self._listen(session, self.config.ping_interval_s, self.ctx.stats, clock=self.clock)
        except NetworkError as e:
            logger.error(f"[supervisor] Listen error: {e.message}")
            error = e
        else:
            error = NetworkError("Listen loop returned without error")
        await session.close()
        self.ctx.session = None
        self._maybe_reset_retries()
        return error

    def _maybe_reset_retries(self) -> None:
        reset_after = self.config.retry_reset_after_s
        if reset_after <= 0 or self.ctx.retries == 0:
            return
        uptime = self.clock() - self.ctx.listen_started
        if uptime >= reset_after:
            logger.info(f"[supervisor] Session was stable for {uptime:.0f}s, retry budget restored")
            self.ctx.retries = 0

    async def _on_failure(self, error: WatcherError) -> Optional[RetriesExhaustedError]:
        self.ctx.state = WatcherState.FAILED
        self.ctx.last_error = error
        self.ctx.stats.failures += 1
        self.ctx.retries += 1
        logger.info(f"[supervisor] Cycle failed: {create_structured_error_response(error)}")
        logger.info(f"[supervisor] Stats: {self.ctx.stats.as_dict()}")

        if self.ctx.retries >= self.config.max_retries:
            self.ctx.state = WatcherState.TERMINATED
            logger.critical("[supervisor] Max retries reached")
            return RetriesExhaustedError(
                details={"retries": self.ctx.retries, "last_error": error.error_code}
            )

        logger.warning(f"[supervisor] Reconnecting {self.ctx.retries}/{self.config.max_retries}")
        await self._sleep(self.config.reconnect_delay_s)
        return None

    def get_health_metrics(self) -> Dict[str, Any]:
        """Get watcher health metrics."""
        return {
            "state": self.ctx.state.value,
            "retries": self.ctx.retries,
            "max_retries": self.config.max_retries,
            "connected": self.ctx.session is not None and not self.ctx.session.closed,
            "token_valid": self.token_manager.is_valid(),
            "last_error": self.ctx.last_error.error_code if self.ctx.last_error else None,
            **self.ctx.stats.as_dict(),
        }
