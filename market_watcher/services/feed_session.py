"""
Feed transport session.
One websocket per instance: handshake, subscribe, send/receive, close.
A session is discarded after close or error; reconnects build a new one.
"""

import asyncio
import logging
from typing import List, Optional, Union

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from market_watcher.config import WatcherConfig
from market_watcher.errors import NetworkError, SessionClosedError

logger = logging.getLogger("market_watcher.feed")

# Errors a dial/send/recv can surface besides the websockets hierarchy
_TRANSPORT_ERRORS = (WebSocketException, OSError, asyncio.TimeoutError)


class FeedSession:
    """Owns exactly one live feed connection."""

    def __init__(self, ws, url: str):
        self.ws = ws
        self.url = url
        self._send_lock = asyncio.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @classmethod
    async def connect(cls, config: WatcherConfig, token: Optional[str]) -> "FeedSession":
        """
        Dial the feed, authenticate and subscribe.

        Raises:
            NetworkError: dial or any handshake send failed. The partial
                session is closed and must not be reused.
        """
        logger.info("[feed] Connecting to WebSocket...")
        try:
            ws = await websockets.connect(
                config.feed_url,
                origin=config.origin,
                user_agent_header=config.user_agent,
                ping_interval=None,  # We handle our own pings
                close_timeout=10,
            )
        except _TRANSPORT_ERRORS as e:
            logger.error(f"[feed] Connection error: {e}")
            raise NetworkError(f"Connection error: {e}", details={"stage": "dial", "url": config.feed_url})

        session = cls(ws, config.feed_url)
        try:
            if token:
                await session._handshake_send(token, "Token send error")
            await session.subscribe(config.channels)
        except NetworkError:
            await session.close()
            raise

        logger.info("[feed] Connected successfully")
        return session

    async def subscribe(self, channels: List[str]) -> None:
        for channel in channels:
            await self._handshake_send(channel, "Subscribe error")
        logger.info(f"[feed] Subscribed to {', '.join(channels)}")

    async def _handshake_send(self, payload: str, what: str) -> None:
        try:
            await self.send(payload)
        except NetworkError as e:
            logger.error(f"[feed] {what}: {e.message}")
            raise

    async def send(self, payload: Union[str, bytes]) -> None:
        """Send one text frame. Sends are serialized on the session."""
        if self._closed:
            raise SessionClosedError("Send on closed session")
        async with self._send_lock:
            try:
                await self.ws.send(payload)
            except ConnectionClosed as e:
                raise SessionClosedError(f"Connection closed during send: {e}")
            except _TRANSPORT_ERRORS as e:
                raise NetworkError(f"Send failed: {e}")

    async def receive(self) -> Union[str, bytes]:
        """Block until the next inbound frame."""
        if self._closed:
            raise SessionClosedError("Receive on closed session")
        try:
            return await self.ws.recv()
        except ConnectionClosed as e:
            raise SessionClosedError(f"Connection closed: {e}")
        except _TRANSPORT_ERRORS as e:
            raise NetworkError(f"Receive failed: {e}")

    async def close(self) -> None:
        """Close the connection. Safe to call more than once; only the first call closes."""
        if self._closed:
            return
        self._closed = True
        try:
            await self.ws.close()
        except _TRANSPORT_ERRORS as e:
            logger.debug(f"[feed] Error while closing: {e}")
        logger.info("[feed] Session closed")
