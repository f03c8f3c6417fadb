"""
Sliding Window Rate Limiter
===========================
Sliding-log rate limiter over a Redis sorted set.
"""

import time
import uuid
from typing import Callable, Optional

import structlog
from redis.exceptions import NoScriptError, RedisError

from .models import RateLimitInfo

logger = structlog.get_logger(__name__)

SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local rate = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local now = tonumber(ARGV[3])
local member = ARGV[4]

redis.call('ZREMRANGEBYSCORE', key, 0, now - window)
local count = redis.call('ZCARD', key)

if count >= rate then
    local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
    local retry_after = window
    if oldest[2] then
        retry_after = tonumber(oldest[2]) + window - now
    end
    return {0, 0, rate, tostring(retry_after)}
end

redis.call('ZADD', key, now, member)
redis.call('EXPIRE', key, math.ceil(window * 2))
return {1, rate - count - 1, rate, '0'}
"""


class SlidingWindowLimiter:
    """
    Sliding window rate limiter using Redis sorted sets.

    More accurate than a fixed window at window edges, slightly more
    expensive. Prune, count and insert run in one Lua call.
    """

    def __init__(
        self,
        redis_client,
        rate: int = 100,
        window: int = 60,
        fail_open: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self.redis = redis_client
        self.rate = rate
        self.window = window
        self.fail_open = fail_open
        self._clock = clock
        self._script_sha: Optional[str] = None

    async def _ensure_script(self) -> str:
        if self._script_sha is None:
            self._script_sha = await self.redis.script_load(SLIDING_WINDOW_SCRIPT)
        return self._script_sha

    async def _evaluate(self, key: str, now: float):
        member = f"{now}:{uuid.uuid4().hex[:8]}"
        args = (1, key, self.rate, self.window, now, member)
        script_sha = await self._ensure_script()
        try:
            return await self.redis.evalsha(script_sha, *args)
        except NoScriptError:
            self._script_sha = None
            script_sha = await self._ensure_script()
            return await self.redis.evalsha(script_sha, *args)

    async def check(self, key: str) -> RateLimitInfo:
        """Check using sliding window algorithm."""
        now = self._clock()
        reset_at = int(now + self.window)

        try:
            allowed, remaining, limit, retry_after = await self._evaluate(key, now)
        except RedisError as e:
            logger.error("Sliding window check failed", error=str(e), fail_open=self.fail_open)
            return RateLimitInfo(
                allowed=self.fail_open,
                remaining=self.rate if self.fail_open else 0,
                limit=self.rate,
                reset_at=reset_at,
                retry_after=None if self.fail_open else self.window,
            )

        if not allowed:
            wait = max(1, int(float(retry_after) + 0.999))
            return RateLimitInfo(
                allowed=False,
                remaining=0,
                limit=int(limit),
                reset_at=int(now + wait),
                retry_after=wait,
            )

        return RateLimitInfo(
            allowed=True,
            remaining=int(remaining),
            limit=int(limit),
            reset_at=reset_at,
        )
