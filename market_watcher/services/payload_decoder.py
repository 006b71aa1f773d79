"""
Feed payload decoder.
Turns one raw frame into an ItemRecord, or classifies it as ignored / bad.
Never raises: bad frames are logged and dropped.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from market_watcher.config import DEFAULT_CHANNEL
from market_watcher.errors import NotJSONError, ParseError, WatcherError
from market_watcher.schemas.item import ItemRecord

logger = logging.getLogger("market_watcher.decoder")
item_logger = logging.getLogger("market_watcher.items")

NEW_ITEM_TYPE = DEFAULT_CHANNEL

# Placeholders the feed uses for "no float value"
_EMPTY_FLOATS = {"", "nil", "<nil>", "null", "None"}


class DecodeKind(str, Enum):
    ITEM = "item"
    IGNORED = "ignored"
    NOT_JSON = "not_json"
    PARSE_ERROR = "parse_error"


@dataclass(frozen=True)
class DecodeResult:
    kind: DecodeKind
    item: Optional[ItemRecord] = None
    error: Optional[WatcherError] = None


def _as_text(raw: Union[str, bytes]) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw


def format_value(value: Any) -> str:
    """Render a scalar the way the log expects: numbers with two decimals."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return f"{value:.2f}"
    return json.dumps(value, separators=(",", ":"))


def get_value(data: Dict[str, Any], key: str, default: str = "") -> str:
    """Exact-key lookup; absent or null fields fall back to default."""
    value = data.get(key)
    if value is None:
        return default
    return format_value(value)


def extract_stickers(data: Dict[str, Any]) -> List[str]:
    stickers = data.get("stickers")
    if not isinstance(stickers, list):
        return []
    ids = []
    for sticker in stickers:
        if isinstance(sticker, bool):
            continue
        if isinstance(sticker, (int, float)):
            ids.append(f"{sticker:.0f}")
        elif isinstance(sticker, str) and sticker.strip():
            ids.append(sticker.strip())
        else:
            logger.debug(f"[decoder] Skipping sticker entry: {sticker!r}")
    return ids


def extract_item(data: Dict[str, Any]) -> ItemRecord:
    float_value = get_value(data, "ui_float")
    inspect_url = get_value(data, "inspect_url").replace("\\/", "/")
    return ItemRecord(
        market_name=get_value(data, "i_market_name"),
        quality=get_value(data, "i_quality", "--"),
        price=get_value(data, "ui_price"),
        currency=get_value(data, "ui_currency"),
        float_value=None if float_value.strip() in _EMPTY_FLOATS else float_value,
        stickers=extract_stickers(data),
        inspect_url=inspect_url or None,
    )


def decode(raw: Union[str, bytes]) -> DecodeResult:
    """Classify and decode one inbound frame."""
    text = _as_text(raw)
    try:
        message = json.loads(text)
    except ValueError:
        return DecodeResult(DecodeKind.NOT_JSON, error=NotJSONError(text))
    if not isinstance(message, dict):
        return DecodeResult(DecodeKind.NOT_JSON, error=NotJSONError(text))

    if message.get("type") != NEW_ITEM_TYPE:
        return DecodeResult(DecodeKind.IGNORED)

    # data is itself a JSON-encoded string
    payload = message.get("data")
    if not isinstance(payload, str):
        return DecodeResult(DecodeKind.PARSE_ERROR, error=ParseError(f"data field is {type(payload).__name__}, expected string"))
    try:
        item_data = json.loads(payload)
    except ValueError as e:
        return DecodeResult(DecodeKind.PARSE_ERROR, error=ParseError(str(e)))
    if not isinstance(item_data, dict):
        return DecodeResult(DecodeKind.PARSE_ERROR, error=ParseError("data does not hold an object"))

    # numbers too large for a float cannot be formatted
    try:
        item = extract_item(item_data)
    except (OverflowError, ValueError) as e:
        return DecodeResult(DecodeKind.PARSE_ERROR, error=ParseError(f"Unrepresentable value: {e}"))
    return DecodeResult(DecodeKind.ITEM, item=item)


def handle_message(raw: Union[str, bytes]) -> DecodeResult:
    """Decode a frame and write the outcome to the log sink."""
    result = decode(raw)
    if result.kind is DecodeKind.ITEM:
        item_logger.info(result.item.render())
    elif result.kind is DecodeKind.NOT_JSON:
        logger.warning(f"[decoder] Non-JSON message: {result.error.message}")
    elif result.kind is DecodeKind.PARSE_ERROR:
        logger.error(f"[decoder] Data parse error: {result.error.message}")
    return result
