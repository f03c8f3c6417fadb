"""
Unit Tests for Configuration, Errors, Logging and Retry
=======================================================
"""

import json
import logging
import sys
from datetime import datetime, timezone

import pytest
import structlog

from otpauth_core.config import AuthConfig, RateLimitWindow
from otpauth_core.errors import (
    ConfigurationFatal,
    ErrorKind,
    InvalidOTP,
    Locked,
    NotFound,
    RateLimited,
)
from otpauth_core.logging import JSONFormatter, mask_email, setup_logging
from otpauth_core.retry import RetryExhausted, retry_with_backoff

ENV_NAMES = (
    "JWT_SECRET",
    "OTP_LENGTH",
    "OTP_EXPIRY_MINUTES",
    "OTP_TTL_SECONDS",
    "OTP_MAX_ATTEMPTS",
    "MAX_LOGIN_FAILURES",
    "LOCK_DURATION_SECONDS",
    "JWT_EXPIRE_SECONDS",
    "CONCEAL_ACCOUNT_STATE",
    "RL_OTP_GENERATION_LIMIT",
    "RATE_LIMIT_WINDOW_MS",
    "RATE_LIMIT_MAX_REQUESTS",
    "RL_AUTH_LIMIT",
    "RL_AUTH_WINDOW_SECONDS",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
        monkeypatch.delenv(f"OTPAUTH_{name}", raising=False)
    return monkeypatch


class TestAuthConfig:
    """Tests for defaults and environment overrides."""

    def test_defaults(self, clean_env):
        config = AuthConfig.from_env()

        assert config.otp_length == 6
        assert config.otp_ttl_seconds == 300
        assert config.max_otp_attempts == 3
        assert config.max_login_failures == 5
        assert config.lock_duration_seconds == 7200
        assert config.token_ttl_seconds == 3600
        assert config.conceal_account_state is False
        assert config.rate_limits.registration == RateLimitWindow(limit=3, window_seconds=3600)
        assert config.rate_limits.otp_generation == RateLimitWindow(limit=2, window_seconds=60)
        assert config.rate_limits.otp_verification == RateLimitWindow(limit=3, window_seconds=300)
        assert config.rate_limits.auth == RateLimitWindow(limit=5, window_seconds=900)

    def test_legacy_names(self, clean_env):
        """Bare variable names from the previous deployment should be honoured."""
        clean_env.setenv("JWT_SECRET", "from-legacy-env")
        clean_env.setenv("OTP_EXPIRY_MINUTES", "10")

        config = AuthConfig.from_env()

        assert config.token_secret == "from-legacy-env"
        assert config.otp_ttl_seconds == 600

    def test_prefixed_names_win(self, clean_env):
        clean_env.setenv("JWT_SECRET", "legacy")
        clean_env.setenv("OTPAUTH_JWT_SECRET", "prefixed")
        clean_env.setenv("OTPAUTH_OTP_EXPIRY_MINUTES", "10")
        clean_env.setenv("OTPAUTH_OTP_TTL_SECONDS", "120")
        clean_env.setenv("OTPAUTH_CONCEAL_ACCOUNT_STATE", "true")
        clean_env.setenv("OTPAUTH_RL_OTP_GENERATION_LIMIT", "5")

        config = AuthConfig.from_env()

        assert config.token_secret == "prefixed"
        assert config.otp_ttl_seconds == 120
        assert config.conceal_account_state is True
        assert config.rate_limits.otp_generation.limit == 5

    def test_login_window_legacy_names(self, clean_env):
        """Login window should honour the millisecond window of the previous deployment."""
        clean_env.setenv("RATE_LIMIT_WINDOW_MS", "600000")
        clean_env.setenv("RATE_LIMIT_MAX_REQUESTS", "10")

        config = AuthConfig.from_env()

        assert config.rate_limits.auth == RateLimitWindow(limit=10, window_seconds=600)

    def test_login_window_prefixed_override(self, clean_env):
        clean_env.setenv("RATE_LIMIT_MAX_REQUESTS", "10")
        clean_env.setenv("OTPAUTH_RL_AUTH_LIMIT", "7")
        clean_env.setenv("OTPAUTH_RL_AUTH_WINDOW_SECONDS", "120")

        config = AuthConfig.from_env()

        assert config.rate_limits.auth == RateLimitWindow(limit=7, window_seconds=120)

    def test_bad_integer(self, clean_env):
        clean_env.setenv("OTPAUTH_OTP_LENGTH", "six")

        with pytest.raises(ConfigurationFatal):
            AuthConfig.from_env()

    def test_validate(self):
        config = AuthConfig(token_secret="s" * 40)

        assert config.validate() is config

    def test_validate_missing_secret(self):
        with pytest.raises(ConfigurationFatal):
            AuthConfig().validate()

    def test_validate_non_positive(self):
        config = AuthConfig(token_secret="s" * 40, max_otp_attempts=0)
        config.rate_limits.registration.limit = -1
        config.rate_limits.auth.window_seconds = 0

        with pytest.raises(ConfigurationFatal) as exc_info:
            config.validate()

        assert "max_otp_attempts" in exc_info.value.message
        assert "rate_limits.registration.limit" in exc_info.value.message
        assert "rate_limits.auth.window_seconds" in exc_info.value.message


class TestErrors:
    """Tests for error serialisation."""

    def test_to_dict(self):
        assert NotFound().to_dict() == {"kind": "not_found", "message": "User not found"}

    def test_extra_fields(self):
        locked_until = datetime(2026, 1, 15, 11, 0, tzinfo=timezone.utc)

        assert InvalidOTP(attempts_remaining=2).to_dict()["attemptsRemaining"] == 2
        assert RateLimited(retry_after=30).to_dict()["retryAfter"] == 30
        assert Locked(locked_until).to_dict()["lockedUntil"] == locked_until.isoformat()
        assert "lockedUntil" not in Locked().to_dict()

    def test_kinds_are_stable(self):
        assert ErrorKind.ATTEMPTS_EXCEEDED.value == "attempts_exceeded"
        assert str(NotFound("gone")) == "gone"


class TestLogging:
    """Tests for structured log output."""

    @pytest.fixture
    def restore_logging(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)
        structlog.reset_defaults()

    def test_mask_email(self):
        assert mask_email("alice@example.com") == "a***@example.com"
        assert mask_email("not-an-email") == "***"
        assert mask_email("") == "***"

    def test_json_formatter(self):
        record = logging.LogRecord("otpauth", logging.INFO, __file__, 10, "Account locked", None, None)
        record.event_fields = {"account_id": "acct-1", "failures": 5}

        data = json.loads(JSONFormatter().format(record))

        assert data["event"] == "Account locked"
        assert data["level"] == "info"
        assert data["account_id"] == "acct-1"
        assert data["context"] == {"failures": 5}
        assert data["at"].endswith(":10")
        assert "request_id" not in data

    def test_json_formatter_error(self):
        """Exceptions should render as a compact error block with the stack as text."""
        try:
            raise ConnectionError("store down")
        except ConnectionError:
            record = logging.LogRecord(
                "otpauth", logging.ERROR, __file__, 20, "Store call failed", None, sys.exc_info()
            )

        data = json.loads(JSONFormatter().format(record))

        assert data["error"]["type"] == "ConnectionError"
        assert data["error"]["detail"] == "store down"
        assert "Traceback" in data["error"]["stack"]
        assert "context" not in data

    def test_structlog_routed_to_json(self, restore_logging, capsys):
        setup_logging(service_name="accounts-api", level="INFO")
        capsys.readouterr()

        structlog.get_logger("otpauth_core.test").info(
            "Login successful", account_id="acct-1", purpose="login", email="a***@example.com"
        )

        line = capsys.readouterr().out.strip().splitlines()[-1]
        data = json.loads(line)
        assert data["event"] == "Login successful"
        assert data["service"] == "accounts-api"
        assert data["account_id"] == "acct-1"
        assert data["purpose"] == "login"
        assert data["context"] == {"email": "a***@example.com"}


class TestRetry:
    """Tests for bounded exponential backoff."""

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError("reset")
            return "ok"

        result = await retry_with_backoff(
            flaky, max_attempts=3, base_delay=0, retryable_exceptions={ConnectionError}
        )

        assert result == "ok"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_exhausted(self):
        async def down():
            raise ConnectionError("refused")

        with pytest.raises(RetryExhausted) as exc_info:
            await retry_with_backoff(
                down, max_attempts=2, base_delay=0, retryable_exceptions={ConnectionError}
            )

        assert isinstance(exc_info.value.last_exception, ConnectionError)

    @pytest.mark.asyncio
    async def test_non_retryable_propagates(self):
        calls = []

        async def broken():
            calls.append(1)
            raise KeyError("bug")

        with pytest.raises(KeyError):
            await retry_with_backoff(
                broken, max_attempts=3, base_delay=0, retryable_exceptions={ConnectionError}
            )

        assert len(calls) == 1
