"""
Authentication Rate Limit Policy
================================
Independent windows placed in front of the authentication state machine.

* registration: per caller IP
* auth: per caller IP and target email, on login requests
* OTP generation: per target email, falling back to IP
* OTP verification: per target email, falling back to IP

The verification window bounds the rate of guesses across reissued
challenges; the per-challenge attempt counter lives on the account.
"""

from typing import Optional, Protocol

import structlog

from ..config import RateLimitConfig, RateLimitWindow
from ..errors import RateLimited
from ..logging import mask_email
from .in_memory import InMemoryRateLimiter
from .models import RateLimitInfo, RateLimitScope
from .redis_limiter import RedisRateLimiter
from .sliding_window import SlidingWindowLimiter

logger = structlog.get_logger(__name__)

KEY_PREFIX = "otpauth"
UNKNOWN_IDENTITY = "unknown"

_MESSAGES = {
    RateLimitScope.REGISTRATION: "Too many registration attempts from this IP. Please try again later.",
    RateLimitScope.OTP_GENERATION: "Too many OTP requests. Please wait before requesting a new OTP.",
    RateLimitScope.OTP_VERIFICATION: "Too many OTP verification attempts. Please wait before trying again.",
    RateLimitScope.AUTH: "Too many requests from this IP, please try again later.",
}


class Limiter(Protocol):
    """Anything that can count a request against a key."""

    async def check(self, key: str) -> RateLimitInfo:
        ...


class AuthRateLimiter:
    """Applies the registration, login, OTP-generation and OTP-verification windows."""

    def __init__(
        self,
        registration: Limiter,
        otp_generation: Limiter,
        otp_verification: Limiter,
        auth: Limiter,
        key_prefix: str = KEY_PREFIX,
    ):
        self._limiters = {
            RateLimitScope.REGISTRATION: registration,
            RateLimitScope.OTP_GENERATION: otp_generation,
            RateLimitScope.OTP_VERIFICATION: otp_verification,
            RateLimitScope.AUTH: auth,
        }
        self.key_prefix = key_prefix

    @classmethod
    def in_memory(cls, config: Optional[RateLimitConfig] = None, **kwargs) -> "AuthRateLimiter":
        """Build every window as process-local limiters."""
        config = config or RateLimitConfig()

        def build(window: RateLimitWindow) -> InMemoryRateLimiter:
            return InMemoryRateLimiter(rate=window.limit, window=window.window_seconds, **kwargs)

        return cls(
            registration=build(config.registration),
            otp_generation=build(config.otp_generation),
            otp_verification=build(config.otp_verification),
            auth=build(config.auth),
        )

    @classmethod
    def redis(
        cls,
        redis_client,
        config: Optional[RateLimitConfig] = None,
        sliding: bool = False,
        fail_open: bool = False,
    ) -> "AuthRateLimiter":
        """
        Build every window on a shared Redis.

        Args:
            redis_client: Async Redis client
            config: Window quotas
            sliding: Use sliding-log windows instead of fixed windows
            fail_open: Allow requests when Redis is unreachable
        """
        config = config or RateLimitConfig()
        limiter_cls = SlidingWindowLimiter if sliding else RedisRateLimiter

        def build(window: RateLimitWindow):
            return limiter_cls(
                redis_client,
                rate=window.limit,
                window=window.window_seconds,
                fail_open=fail_open,
            )

        return cls(
            registration=build(config.registration),
            otp_generation=build(config.otp_generation),
            otp_verification=build(config.otp_verification),
            auth=build(config.auth),
        )

    def key_for(self, scope: RateLimitScope, identity: str) -> str:
        """Generate a rate limit key."""
        return f"{self.key_prefix}:{scope.value}:{identity}"

    async def check_registration(self, client_ip: Optional[str]) -> RateLimitInfo:
        return await self._check(RateLimitScope.REGISTRATION, client_ip or UNKNOWN_IDENTITY)

    async def check_otp_generation(
        self, email: Optional[str], client_ip: Optional[str]
    ) -> RateLimitInfo:
        return await self._check(
            RateLimitScope.OTP_GENERATION, _identity(email, client_ip)
        )

    async def check_otp_verification(
        self, email: Optional[str], client_ip: Optional[str]
    ) -> RateLimitInfo:
        return await self._check(
            RateLimitScope.OTP_VERIFICATION, _identity(email, client_ip)
        )

    async def check_auth(self, email: Optional[str], client_ip: Optional[str]) -> RateLimitInfo:
        """Login requests, keyed by caller IP and email."""
        email = (email or "").strip().lower() or "no-email"
        return await self._check(
            RateLimitScope.AUTH, f"{client_ip or UNKNOWN_IDENTITY}:{email}"
        )

    async def _check(self, scope: RateLimitScope, identity: str) -> RateLimitInfo:
        info = await self._limiters[scope].check(self.key_for(scope, identity))
        if not info.allowed:
            retry_after = info.retry_after or 1
            logger.warning(
                "Rate limit exceeded",
                scope=scope.value,
                identity=mask_email(identity) if "@" in identity else identity,
                retry_after=retry_after,
            )
            raise RateLimited(retry_after=retry_after, message=_MESSAGES[scope])
        return info


def _identity(email: Optional[str], client_ip: Optional[str]) -> str:
    email = (email or "").strip().lower()
    return email or client_ip or UNKNOWN_IDENTITY
