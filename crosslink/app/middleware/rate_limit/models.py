"""Rate limiting data models.

This module contains dataclasses for rate limit state and results.
"""

from dataclasses import dataclass
from typing import Optional

from crosslink.app.core.utils import to_iso8601


@dataclass
class RateLimitWindow:
    """Fixed window state for one API key."""
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of a rate limit admission."""
    allowed: bool
    limit: int
    remaining: int
    reset_at: Optional[float] = None


@dataclass(frozen=True)
class RateLimitSnapshot:
    """Read-only view of a key's window, used for response headers."""
    limit: int
    remaining: int
    reset_at: float

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": to_iso8601(self.reset_at),
        }
