"""
Rate Limiting
=============
Fixed and sliding window limiters plus the authentication window policy.
"""

from .models import RateLimitResult, RateLimitInfo, RateLimitScope
from .in_memory import InMemoryRateLimiter
from .redis_limiter import RedisRateLimiter, FIXED_WINDOW_SCRIPT
from .sliding_window import SlidingWindowLimiter, SLIDING_WINDOW_SCRIPT
from .policy import AuthRateLimiter

__all__ = [
    # Models
    "RateLimitResult",
    "RateLimitInfo",
    "RateLimitScope",
    # Limiters
    "InMemoryRateLimiter",
    "RedisRateLimiter",
    "SlidingWindowLimiter",
    # Policy
    "AuthRateLimiter",
    # Scripts
    "FIXED_WINDOW_SCRIPT",
    "SLIDING_WINDOW_SCRIPT",
]
