"""
In-Memory Rate Limiter
======================
Fixed-window counter for a single process.
"""

import asyncio
import time
from typing import Callable, Dict

from .models import RateLimitInfo


class InMemoryRateLimiter:
    """
    Fixed-window rate limiter held in process memory.

    Counters are updated under an asyncio lock, so concurrent handlers in
    one event loop never double-spend a slot. Use RedisRateLimiter when
    several processes share the quota.
    """

    def __init__(
        self,
        rate: int = 100,
        window: int = 60,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            rate: Number of requests allowed per window
            window: Window size in seconds
            clock: Source of the current Unix time
        """
        self.rate = rate
        self.window = window
        self._clock = clock
        self._buckets: Dict[str, Dict[str, int]] = {}
        self._lock = asyncio.Lock()

    async def check(self, key: str) -> RateLimitInfo:
        """
        Count a request against ``key`` if the window has room.

        Args:
            key: Unique identifier (e.g., email, client IP)

        Returns:
            RateLimitInfo with decision and quota
        """
        async with self._lock:
            now = self._clock()
            window_start = int(now // self.window) * self.window
            reset_at = window_start + self.window

            bucket = self._buckets.get(key)
            if bucket is None or bucket["window"] < window_start:
                self._prune(window_start)
                bucket = {"window": window_start, "count": 0}
                self._buckets[key] = bucket

            if bucket["count"] >= self.rate:
                return RateLimitInfo(
                    allowed=False,
                    remaining=0,
                    limit=self.rate,
                    reset_at=reset_at,
                    retry_after=max(1, int(reset_at - now)),
                )

            bucket["count"] += 1
            return RateLimitInfo(
                allowed=True,
                remaining=self.rate - bucket["count"],
                limit=self.rate,
                reset_at=reset_at,
            )

    async def reset(self, key: str) -> None:
        async with self._lock:
            self._buckets.pop(key, None)

    def _prune(self, window_start: int) -> None:
        """Drop buckets from past windows."""
        stale = [k for k, b in self._buckets.items() if b["window"] < window_start]
        for k in stale:
            del self._buckets[k]
