from .item import ItemRecord, SessionToken, TokenResponse

__all__ = ["ItemRecord", "SessionToken", "TokenResponse"]
