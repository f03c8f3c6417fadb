"""
Authentication Configuration
============================
Tunable limits for OTP issuance, verification, lockout, rate limiting
and session tokens. Every value has a default and can be overridden
from the environment.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from .errors import ConfigurationFatal

DEFAULT_ENV_PREFIX = "OTPAUTH_"


def _env(name: str, prefix: str) -> Optional[str]:
    """Prefixed variable first, then the bare legacy name."""
    value = os.getenv(f"{prefix}{name}")
    if value is None:
        value = os.getenv(name)
    return value


def _env_int(name: str, prefix: str, default: int) -> int:
    value = _env(name, prefix)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationFatal(f"{prefix}{name} must be an integer, got {value!r}")


def _env_bool(name: str, prefix: str, default: bool) -> bool:
    value = _env(name, prefix)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class RateLimitWindow:
    """A quota of ``limit`` requests per ``window_seconds``."""
    limit: int
    window_seconds: int


@dataclass
class RateLimitConfig:
    """Quotas for the independent request windows."""
    registration: RateLimitWindow = field(
        default_factory=lambda: RateLimitWindow(limit=3, window_seconds=3600)
    )
    otp_generation: RateLimitWindow = field(
        default_factory=lambda: RateLimitWindow(limit=2, window_seconds=60)
    )
    otp_verification: RateLimitWindow = field(
        default_factory=lambda: RateLimitWindow(limit=3, window_seconds=300)
    )
    auth: RateLimitWindow = field(
        default_factory=lambda: RateLimitWindow(limit=5, window_seconds=900)
    )


@dataclass
class HashingConfig:
    """Argon2id cost parameters (~300ms per hash on a typical server)."""
    time_cost: int = 3
    memory_cost: int = 65536  # KiB
    parallelism: int = 4
    hash_len: int = 32
    salt_len: int = 16


@dataclass
class AuthConfig:
    """Configuration for the authentication core."""
    token_secret: str = ""
    otp_length: int = 6
    otp_ttl_seconds: int = 300  # 5 minutes
    max_otp_attempts: int = 3
    max_login_failures: int = 5
    lock_duration_seconds: int = 2 * 60 * 60
    min_secret_length: int = 6
    min_name_length: int = 2
    token_ttl_seconds: int = 3600
    token_algorithm: str = "HS256"
    conceal_account_state: bool = False
    max_write_conflicts: int = 5
    store_retry_attempts: int = 3
    store_retry_base_delay: float = 0.05
    rate_limits: RateLimitConfig = field(default_factory=RateLimitConfig)
    hashing: HashingConfig = field(default_factory=HashingConfig)

    @classmethod
    def from_env(cls, prefix: str = DEFAULT_ENV_PREFIX) -> "AuthConfig":
        """
        Build a config from environment variables.

        ``OTP_EXPIRY_MINUTES`` is honoured for compatibility; ``OTP_TTL_SECONDS``
        wins when both are set. The login window also reads the legacy
        ``RATE_LIMIT_WINDOW_MS`` and ``RATE_LIMIT_MAX_REQUESTS``.

        Args:
            prefix: Prefix checked before the bare variable name

        Returns:
            AuthConfig (not yet validated)
        """
        defaults = cls()
        ttl = defaults.otp_ttl_seconds
        expiry_minutes = _env("OTP_EXPIRY_MINUTES", prefix)
        if expiry_minutes:
            ttl = _env_int("OTP_EXPIRY_MINUTES", prefix, 5) * 60
        ttl = _env_int("OTP_TTL_SECONDS", prefix, ttl)

        auth_window_ms = _env_int("RATE_LIMIT_WINDOW_MS", prefix, 900 * 1000)

        rate_limits = RateLimitConfig(
            registration=RateLimitWindow(
                limit=_env_int("RL_REGISTRATION_LIMIT", prefix, 3),
                window_seconds=_env_int("RL_REGISTRATION_WINDOW_SECONDS", prefix, 3600),
            ),
            otp_generation=RateLimitWindow(
                limit=_env_int("RL_OTP_GENERATION_LIMIT", prefix, 2),
                window_seconds=_env_int("RL_OTP_GENERATION_WINDOW_SECONDS", prefix, 60),
            ),
            otp_verification=RateLimitWindow(
                limit=_env_int("RL_OTP_VERIFICATION_LIMIT", prefix, 3),
                window_seconds=_env_int("RL_OTP_VERIFICATION_WINDOW_SECONDS", prefix, 300),
            ),
            auth=RateLimitWindow(
                limit=_env_int(
                    "RL_AUTH_LIMIT", prefix, _env_int("RATE_LIMIT_MAX_REQUESTS", prefix, 5)
                ),
                window_seconds=_env_int(
                    "RL_AUTH_WINDOW_SECONDS", prefix, max(auth_window_ms // 1000, 1)
                ),
            ),
        )

        return cls(
            token_secret=_env("JWT_SECRET", prefix) or "",
            otp_length=_env_int("OTP_LENGTH", prefix, defaults.otp_length),
            otp_ttl_seconds=ttl,
            max_otp_attempts=_env_int("OTP_MAX_ATTEMPTS", prefix, defaults.max_otp_attempts),
            max_login_failures=_env_int("MAX_LOGIN_FAILURES", prefix, defaults.max_login_failures),
            lock_duration_seconds=_env_int(
                "LOCK_DURATION_SECONDS", prefix, defaults.lock_duration_seconds
            ),
            min_secret_length=_env_int("MIN_SECRET_LENGTH", prefix, defaults.min_secret_length),
            token_ttl_seconds=_env_int("JWT_EXPIRE_SECONDS", prefix, defaults.token_ttl_seconds),
            conceal_account_state=_env_bool(
                "CONCEAL_ACCOUNT_STATE", prefix, defaults.conceal_account_state
            ),
            rate_limits=rate_limits,
        )

    def validate(self) -> "AuthConfig":
        """
        Fail fast on settings the process cannot run with.

        Raises:
            ConfigurationFatal: Missing signing secret or non-positive limits
        """
        if not self.token_secret:
            raise ConfigurationFatal("Token signing secret is not configured")

        positive = {
            "otp_length": self.otp_length,
            "otp_ttl_seconds": self.otp_ttl_seconds,
            "max_otp_attempts": self.max_otp_attempts,
            "max_login_failures": self.max_login_failures,
            "lock_duration_seconds": self.lock_duration_seconds,
            "token_ttl_seconds": self.token_ttl_seconds,
            "max_write_conflicts": self.max_write_conflicts,
            "store_retry_attempts": self.store_retry_attempts,
        }
        for name, window in (
            ("registration", self.rate_limits.registration),
            ("otp_generation", self.rate_limits.otp_generation),
            ("otp_verification", self.rate_limits.otp_verification),
            ("auth", self.rate_limits.auth),
        ):
            positive[f"rate_limits.{name}.limit"] = window.limit
            positive[f"rate_limits.{name}.window_seconds"] = window.window_seconds

        invalid = [name for name, value in positive.items() if value <= 0]
        if invalid:
            raise ConfigurationFatal(f"Settings must be positive: {', '.join(invalid)}")
        return self
