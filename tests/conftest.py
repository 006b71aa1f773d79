"""
Pytest Configuration.
Provides deterministic time, a scripted fake websocket and watcher config fixtures.
"""

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from websockets.exceptions import ConnectionClosedError

from market_watcher.config import WatcherConfig
from market_watcher.observability.logs import detach_handlers


class FakeWebSocket:
    """Scripted stand-in for a websockets client connection."""

    def __init__(self, frames=None):
        self.inbound: asyncio.Queue = asyncio.Queue()
        for frame in frames or []:
            self.inbound.put_nowait(frame)
        self.sent = []
        self.fail_send_on = None   # payload that makes send() raise
        self.close_calls = 0

    def feed(self, frame) -> None:
        self.inbound.put_nowait(frame)

    def drop(self) -> None:
        """Make the next recv() fail as if the peer went away."""
        self.inbound.put_nowait(ConnectionClosedError(None, None))

    async def send(self, message):
        if self.fail_send_on is not None and message == self.fail_send_on:
            raise ConnectionClosedError(None, None)
        self.sent.append(message)

    async def recv(self):
        frame = await self.inbound.get()
        if isinstance(frame, BaseException):
            raise frame
        return frame

    async def close(self):
        self.close_calls += 1


@pytest.fixture
def fake_ws() -> FakeWebSocket:
    return FakeWebSocket()


@pytest.fixture
def watcher_config() -> WatcherConfig:
    return WatcherConfig(
        api_key="test-key-123456",
        token_url="https://market.test/api/v2/get-ws-token",
        feed_url="wss://feed.test/wsn/",
        reconnect_delay_s=5.0,
        max_retries=5,
        ping_interval_s=0.01,
    )


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def deterministic_time():
    """Provide a frozen clock that tests advance by hand."""
    from market_watcher.util.async_tools import DeterministicClock

    clock = DeterministicClock()
    clock.freeze()

    yield clock

    clock.unfreeze()


@pytest.fixture(autouse=True)
def reset_watcher_logging():
    """Don't leak file handlers between tests."""
    yield
    detach_handlers()
    logging.getLogger("market_watcher").setLevel(logging.NOTSET)


# Pytest configuration
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "deterministic: marks tests as deterministic")
