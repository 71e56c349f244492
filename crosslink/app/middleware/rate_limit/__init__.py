"""Rate limiting for cross-system requests.

Fixed window counting per API key, held in process memory.
"""

from crosslink.app.middleware.rate_limit.limiter import (
    DEFAULT_MAX_REQUESTS,
    DEFAULT_WINDOW_SECONDS,
    FixedWindowRateLimiter,
)
from crosslink.app.middleware.rate_limit.models import (
    RateLimitDecision,
    RateLimitSnapshot,
    RateLimitWindow,
)

__all__ = [
    "DEFAULT_MAX_REQUESTS",
    "DEFAULT_WINDOW_SECONDS",
    "FixedWindowRateLimiter",
    "RateLimitDecision",
    "RateLimitSnapshot",
    "RateLimitWindow",
]
