"""Fixed window rate limiter keyed by API key.

State lives in process memory and is swept lazily on each admission, so the
store only holds keys that were active during the last window. Each process
enforces its own limits.
"""

import asyncio
import hashlib
import time
from typing import Callable, Dict, Optional

from crosslink.app.core.logging import get_logger
from crosslink.app.middleware.rate_limit.models import (
    RateLimitDecision,
    RateLimitSnapshot,
    RateLimitWindow,
)

logger = get_logger(__name__)

DEFAULT_MAX_REQUESTS = 100
DEFAULT_WINDOW_SECONDS = 60


class FixedWindowRateLimiter:
    """In-memory fixed window limiter.

    A window opens on a key's first request and lasts ``window_seconds``.
    Up to ``max_requests`` requests are admitted inside it; the request that
    finds the window full is rejected without being counted. The first
    request after the window ends opens a new one with a count of 1.

    Windows are fixed, not sliding, so a caller can get up to twice the
    limit through in a short span straddling a reset.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize rate limiter.

        Args:
            max_requests: Requests admitted per key per window
            window_seconds: Window length in seconds
            clock: Returns the current POSIX time; injectable for tests
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, RateLimitWindow] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _key(credential: str) -> str:
        # Raw keys are never held in memory as dictionary keys
        return hashlib.sha256(credential.encode("utf-8")).hexdigest()

    def _sweep(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if window.reset_at < now]
        for key in expired:
            del self._windows[key]

    async def admit(
        self,
        credential: Optional[str],
        now: Optional[float] = None,
        bypass: bool = False,
    ) -> RateLimitDecision:
        """Count one request against the credential's window.

        Args:
            credential: Presented API key; None passes through uncounted
            now: Current POSIX time, defaults to the limiter's clock
            bypass: Development loopback pass, also uncounted

        Returns:
            RateLimitDecision with allowed status and window metadata
        """
        if bypass or not credential:
            return RateLimitDecision(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests,
            )

        key = self._key(credential)
        async with self._lock:
            if now is None:
                now = self._clock()

            self._sweep(now)

            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                window = RateLimitWindow(count=1, reset_at=now + self.window_seconds)
                self._windows[key] = window
                return RateLimitDecision(
                    allowed=True,
                    limit=self.max_requests,
                    remaining=self.max_requests - 1,
                    reset_at=window.reset_at,
                )

            if window.count >= self.max_requests:
                return RateLimitDecision(
                    allowed=False,
                    limit=self.max_requests,
                    remaining=0,
                    reset_at=window.reset_at,
                )

            window.count += 1
            return RateLimitDecision(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests - window.count,
                reset_at=window.reset_at,
            )

    def peek(
        self,
        credential: Optional[str],
        now: Optional[float] = None,
    ) -> RateLimitSnapshot:
        """Report a credential's current window without changing it.

        Callers without a window (bypassed, or not yet counted) get the values
        a fresh window would have.
        """
        if now is None:
            now = self._clock()

        window = self._windows.get(self._key(credential)) if credential else None
        if window is None:
            return RateLimitSnapshot(
                limit=self.max_requests,
                remaining=self.max_requests - 1,
                reset_at=now + self.window_seconds,
            )
        return RateLimitSnapshot(
            limit=self.max_requests,
            remaining=max(0, self.max_requests - window.count),
            reset_at=window.reset_at,
        )

    def get_window(self, credential: str) -> Optional[RateLimitWindow]:
        """Return the stored window for a credential, if any."""
        return self._windows.get(self._key(credential))

    def __len__(self) -> int:
        return len(self._windows)

    async def reset(self) -> None:
        """Drop all windows."""
        async with self._lock:
            self._windows.clear()
            logger.debug("Rate limit store cleared")
