# market_watcher/config.py
from dataclasses import dataclass, field
from typing import List
import logging
import os

from dotenv import load_dotenv, find_dotenv

from market_watcher.errors import ConfigurationError

# Load nearest .env from project tree, don't override existing process env
load_dotenv(find_dotenv(usecwd=True), override=False)

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_URL = "https://market.csgo.com/api/v2/get-ws-token"
DEFAULT_FEED_URL = "wss://wsn.dota2.net/wsn/"
DEFAULT_ORIGIN = "https://market.csgo.com"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
DEFAULT_CHANNEL = "newitems_go"


@dataclass(frozen=True)
class WatcherConfig:
    api_key: str
    token_url: str = DEFAULT_TOKEN_URL
    feed_url: str = DEFAULT_FEED_URL
    origin: str = DEFAULT_ORIGIN
    user_agent: str = DEFAULT_USER_AGENT
    channels: List[str] = field(default_factory=lambda: [DEFAULT_CHANNEL])
    reconnect_delay_s: float = 5.0
    max_retries: int = 5
    ping_interval_s: float = 45.0
    token_ttl_s: float = 9 * 60     # under the server's real expiry
    http_timeout_s: float = 10.0
    log_dir: str = "logs"
    log_level: str = "INFO"
    retry_reset_after_s: float = 0.0  # 0 disables


def _number(name: str, default: str, cast=float):
    raw = (os.getenv(name) or default).strip()
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}", details={"env": name})


def _require(name: str) -> str:
    v = (os.getenv(name) or "").strip()
    if not v:
        raise ConfigurationError(f"Missing env var: {name}", details={"env": name})
    return v


def load_config(require_key: bool = True) -> WatcherConfig:
    """Build the watcher configuration from the environment."""
    api_key = _require("MARKET_API_KEY") if require_key else (os.getenv("MARKET_API_KEY") or "").strip()

    channels = [c.strip() for c in (os.getenv("WATCHER_CHANNELS") or DEFAULT_CHANNEL).split(",") if c.strip()]
    if not channels:
        raise ConfigurationError("WATCHER_CHANNELS must name at least one channel")

    max_retries = _number("WATCHER_MAX_RETRIES", "5", int)
    if max_retries < 0:
        raise ConfigurationError("WATCHER_MAX_RETRIES must be >= 0")

    return WatcherConfig(
        api_key=api_key,
        token_url=(os.getenv("WATCHER_TOKEN_URL") or DEFAULT_TOKEN_URL).strip(),
        feed_url=(os.getenv("WATCHER_FEED_URL") or DEFAULT_FEED_URL).strip(),
        origin=(os.getenv("WATCHER_ORIGIN") or DEFAULT_ORIGIN).strip(),
        user_agent=(os.getenv("WATCHER_USER_AGENT") or DEFAULT_USER_AGENT).strip(),
        channels=channels,
        reconnect_delay_s=_number("WATCHER_RECONNECT_DELAY_S", "5"),
        max_retries=max_retries,
        ping_interval_s=_number("WATCHER_PING_INTERVAL_S", "45"),
        token_ttl_s=_number("WATCHER_TOKEN_TTL_S", "540"),
        http_timeout_s=_number("WATCHER_HTTP_TIMEOUT_S", "10"),
        log_dir=(os.getenv("WATCHER_LOG_DIR") or "logs").strip(),
        log_level=(os.getenv("WATCHER_LOG_LEVEL") or "INFO").strip().upper(),
        retry_reset_after_s=_number("WATCHER_RETRY_RESET_AFTER_S", "0"),
    )


def redacted(cfg: WatcherConfig) -> dict:
    key = cfg.api_key
    masked = key[:4] + "..." + key[-2:] if len(key) > 8 else "***"
    return {
        "api_key": masked if key else "",
        "token_url": cfg.token_url,
        "feed_url": cfg.feed_url,
        "channels": list(cfg.channels),
        "reconnect_delay_s": cfg.reconnect_delay_s,
        "max_retries": cfg.max_retries,
        "ping_interval_s": cfg.ping_interval_s,
        "token_ttl_s": cfg.token_ttl_s,
        "log_dir": cfg.log_dir,
        "retry_reset_after_s": cfg.retry_reset_after_s,
    }
