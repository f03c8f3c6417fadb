"""
Redis Rate Limiter
==================
Redis-backed fixed-window rate limiter using a Lua script for atomic updates.
"""

import time
from typing import Callable, Optional

import structlog
from redis.exceptions import NoScriptError, RedisError

from .models import RateLimitInfo

logger = structlog.get_logger(__name__)

# Read, compare and increment in one round trip so concurrent handlers
# across processes cannot both take the last slot.
FIXED_WINDOW_SCRIPT = """
local key = KEYS[1]
local rate = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local now = tonumber(ARGV[3])

local window_start = math.floor(now / window) * window
local reset_at = window_start + window
local count = 0

local saved = redis.call('HMGET', key, 'window', 'count')
if saved[1] and tonumber(saved[1]) >= window_start then
    count = tonumber(saved[2]) or 0
end

if count >= rate then
    return {0, 0, rate, reset_at, reset_at - now}
end

count = count + 1
redis.call('HSET', key, 'window', window_start, 'count', count)
redis.call('EXPIRE', key, window * 2)

return {1, rate - count, rate, reset_at, 0}
"""


class RedisRateLimiter:
    """
    Redis-backed fixed-window rate limiter.

    Uses Lua scripts for atomic operations.
    """

    def __init__(
        self,
        redis_client,
        rate: int = 100,
        window: int = 60,
        fail_open: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            redis_client: Async Redis client (redis.asyncio.Redis)
            rate: Requests per window
            window: Window size in seconds
            fail_open: Allow requests when Redis is unreachable
            clock: Source of the current Unix time
        """
        self.redis = redis_client
        self.rate = rate
        self.window = window
        self.fail_open = fail_open
        self._clock = clock
        self._script_sha: Optional[str] = None

    async def _ensure_script(self) -> str:
        """Load Lua script into Redis if needed."""
        if self._script_sha is None:
            self._script_sha = await self.redis.script_load(FIXED_WINDOW_SCRIPT)
        return self._script_sha

    async def _evaluate(self, key: str, now: int):
        script_sha = await self._ensure_script()
        try:
            return await self.redis.evalsha(script_sha, 1, key, self.rate, self.window, now)
        except NoScriptError:
            # Script cache was flushed (restart, SCRIPT FLUSH)
            self._script_sha = None
            script_sha = await self._ensure_script()
            return await self.redis.evalsha(script_sha, 1, key, self.rate, self.window, now)

    async def check(self, key: str) -> RateLimitInfo:
        """
        Check if request is allowed using Redis.

        Args:
            key: Rate limit key

        Returns:
            RateLimitInfo with decision
        """
        now = int(self._clock())

        try:
            allowed, remaining, limit, reset_at, retry_after = await self._evaluate(key, now)
        except RedisError as e:
            logger.error("Rate limit check failed", error=str(e), fail_open=self.fail_open)
            return self._degraded(now)

        return RateLimitInfo(
            allowed=bool(allowed),
            remaining=int(remaining),
            limit=int(limit),
            reset_at=int(reset_at),
            retry_after=max(1, int(retry_after)) if not allowed else None,
        )

    def _degraded(self, now: int) -> RateLimitInfo:
        if self.fail_open:
            return RateLimitInfo(
                allowed=True,
                remaining=self.rate,
                limit=self.rate,
                reset_at=now + self.window,
            )
        return RateLimitInfo(
            allowed=False,
            remaining=0,
            limit=self.rate,
            reset_at=now + self.window,
            retry_after=self.window,
        )
