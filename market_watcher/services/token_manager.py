"""
Session token exchange.
Trades the API key for a short-lived feed token and tracks its expiry.
"""

import logging
import time
from typing import Callable, Optional, Tuple

import httpx
from pydantic import ValidationError

from market_watcher.config import WatcherConfig
from market_watcher.errors import NetworkError, ParseError, RemoteError, WatcherError, sanitize_error_message
from market_watcher.schemas.item import SessionToken, TokenResponse

logger = logging.getLogger("market_watcher.token")


class TokenManager:
    """Acquires feed tokens. Failures come back as values, never raised."""

    def __init__(self, config: WatcherConfig,
                 client: Optional[httpx.AsyncClient] = None,
                 clock: Callable[[], float] = time.time):
        self.config = config
        self.clock = clock
        self._client = client
        self._owns_client = client is None
        self.current: Optional[SessionToken] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.http_timeout_s)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def is_valid(self) -> bool:
        """True only while now < expires_at of the held token."""
        return self.current is not None and self.current.is_valid(self.clock())

    async def acquire_token(self, api_key: Optional[str] = None) -> Tuple[Optional[SessionToken], Optional[WatcherError]]:
        """
        Exchange the API key for a session token.

        Returns:
            (token, None) on success, (None, error) on NetworkError,
            ParseError or RemoteError
        """
        key = self.config.api_key if api_key is None else api_key
        client = await self._get_client()

        try:
            response = await client.post(
                self.config.token_url,
                params={"key": key},
                headers={"Content-Type": "application/json"},
            )
            body = response.content
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            msg = sanitize_error_message(str(e) or type(e).__name__, [key])
            logger.error(f"[token] Token request error: {msg}")
            return None, NetworkError(f"Token request error: {msg}", details={"stage": "token"})

        try:
            data = TokenResponse.model_validate_json(body)
        except ValidationError as e:
            logger.error(f"[token] Token parse error: {e.error_count()} problem(s) in body of {len(body)} bytes")
            return None, ParseError("Token parse error", details={"stage": "token", "status": response.status_code})

        if not data.success:
            logger.error(f"[token] Token error: {data.error or ''}")
            return None, RemoteError(data.error or "token request rejected", details={"stage": "token"})

        token = SessionToken(value=data.token or "", expires_at=self.clock() + self.config.token_ttl_s)
        self.current = token
        logger.info("[token] Token updated")
        return token, None

    async def ensure_token(self) -> Tuple[Optional[SessionToken], Optional[WatcherError]]:
        """Return the held token, refreshing it first if absent or expired."""
        if self.is_valid():
            return self.current, None
        self.current = None
        return await self.acquire_token()
