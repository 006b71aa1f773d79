"""
Feed schemas using Pydantic for validation and rendering.
"""

from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

BANNER = "=" * 50


@dataclass(frozen=True)
class SessionToken:
    """Short-lived credential for the feed. Replaced wholesale, never mutated."""
    value: str
    expires_at: float  # epoch seconds

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


class TokenResponse(BaseModel):
    """Body of the token endpoint. Strict: "true" is not a boolean here."""
    model_config = ConfigDict(strict=True)

    success: bool = False
    token: Optional[str] = None
    error: Optional[str] = None


class ItemRecord(BaseModel):
    """Normalized projection of one new-item announcement."""
    market_name: str = ""
    quality: str = "--"
    price: str = ""
    currency: str = ""
    float_value: Optional[str] = None
    stickers: List[str] = Field(default_factory=list)
    inspect_url: Optional[str] = None

    def render(self) -> str:
        """Multi-line record written as a single log entry."""
        lines = [
            "",
            BANNER,
            f"Item: {self.market_name}",
            f"Quality: {self.quality}",
            f"Price: {self.price} {self.currency}",
        ]
        if self.float_value:
            lines.append(f"Float: {self.float_value}")
        if self.stickers:
            lines.append("Stickers:")
            lines.extend(f"  - ID: {sticker_id}" for sticker_id in self.stickers)
        if self.inspect_url:
            lines.append(f"Inspect: {self.inspect_url}")
        lines.append(BANNER)
        return "\n".join(lines)
