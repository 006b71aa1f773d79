"""
Centralized Exceptions.
Error taxonomy for the watcher: token, transport and decode failures.
"""

from typing import Dict, Any, Optional


class WatcherError(Exception):
    """Base exception for the market watcher."""

    def __init__(self, message: str, error_code: str = "UNKNOWN", details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class NetworkError(WatcherError):
    """Dial, send or receive failure."""

    def __init__(self, message: str = "Network error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "NETWORK_ERROR", details)


class SessionClosedError(NetworkError):
    """The feed connection was closed (by either side)."""

    def __init__(self, message: str = "Session closed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.error_code = "SESSION_CLOSED"


class ParseError(WatcherError):
    """Malformed JSON in a token response or an item payload."""

    def __init__(self, message: str = "Parse error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "PARSE_ERROR", details)


class RemoteError(WatcherError):
    """Token endpoint answered but reported failure."""

    def __init__(self, message: str = "Remote error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "REMOTE_ERROR", details)


class NotJSONError(WatcherError):
    """Inbound frame is not a JSON object."""

    def __init__(self, message: str = "Non-JSON message", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "NOT_JSON", details)


class ConfigurationError(WatcherError):
    """Configuration error."""

    def __init__(self, message: str = "Configuration error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIG_ERROR", details)


class RetriesExhaustedError(WatcherError):
    """Terminal state: the retry budget is spent."""

    def __init__(self, message: str = "Max retries reached", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "RETRIES_EXHAUSTED", details)


def sanitize_error_message(message: str, secrets: Optional[list] = None) -> str:
    """Mask secrets (API key, token) that may be echoed back in error text."""
    sanitized = message
    for secret in secrets or []:
        if secret:
            sanitized = sanitized.replace(secret, "***")
    return sanitized


def create_structured_error_response(error: Exception) -> Dict[str, Any]:
    """Flatten an error into a dict for structured log lines."""
    if isinstance(error, WatcherError):
        return {
            "error_type": error.error_code,
            "message": error.message,
            "details": error.details,
        }
    return {
        "error_type": "UNKNOWN_ERROR",
        "message": str(error),
        "details": {},
    }
