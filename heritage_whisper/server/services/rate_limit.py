"""
In-process sliding-window rate limiting.

Each limiter keeps the timestamps of recent hits per key (a user id or a
client IP). Limits only hold within one process; a multi-instance deployment
gets one budget per instance.
"""

from __future__ import annotations

import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional

from heritage_whisper.core.errors import RateLimitExceededError
from heritage_whisper.core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int


class SlidingWindowRateLimiter:
    """Allow at most ``limit`` hits per ``window_seconds`` for every key.

    Args:
        name: Label used in log lines and error messages.
        limit: Maximum hits inside one window.
        window_seconds: Window length.
        clock: Monotonic time source, replaceable in tests.
    """

    def __init__(
        self, name: str, limit: int, window_seconds: float, *, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.name = name
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()

    def _prune(self, hits: Deque[float], now: float) -> None:
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        # A key whose newest hit is outside the window has nothing left to count.
        stale = [key for key, hits in self._hits.items() if not hits or now - hits[-1] >= self.window_seconds]
        for key in stale:
            del self._hits[key]
        self._last_sweep = now

    @property
    def tracked_keys(self) -> int:
        """Number of keys currently tracked."""
        return len(self._hits)

    def hit(self, key: str) -> RateLimitResult:
        now = self._clock()
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(now)
        hits = self._hits.setdefault(key, deque())
        self._prune(hits, now)
        if len(hits) >= self.limit:
            retry_after = max(1, math.ceil(self.window_seconds - (now - hits[0])))
            return RateLimitResult(allowed=False, limit=self.limit, remaining=0, retry_after=retry_after)
        hits.append(now)
        return RateLimitResult(allowed=True, limit=self.limit, remaining=self.limit - len(hits), retry_after=0)

    async def check(self, key: str) -> RateLimitResult:
        """Record a hit for ``key`` or raise ``RateLimitExceededError``."""
        result = self.hit(key)
        if not result.allowed:
            logger.warning(f"Rate limit '{self.name}' exceeded for {key}, retry in {result.retry_after}s")
            raise RateLimitExceededError(
                f"Too many requests. Please try again in {result.retry_after} seconds.",
                retry_after=result.retry_after,
            )
        return result

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._hits.clear()
        else:
            self._hits.pop(key, None)


auth_limiter = SlidingWindowRateLimiter("auth", 5, 10)
upload_limiter = SlidingWindowRateLimiter("upload", 10, 60)
api_limiter = SlidingWindowRateLimiter("api", 30, 60)
ai_limiter = SlidingWindowRateLimiter("ai", 10, 60)
tier3_limiter = SlidingWindowRateLimiter("tier3", 1, 300)
prompt_submit_limiter = SlidingWindowRateLimiter("prompt-submit", 5, 3600)

ALL_LIMITERS = (auth_limiter, upload_limiter, api_limiter, ai_limiter, tier3_limiter, prompt_submit_limiter)


def reset_all_limiters() -> None:
    for limiter in ALL_LIMITERS:
        limiter.reset()
