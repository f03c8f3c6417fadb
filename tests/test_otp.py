"""
Unit Tests for OTP Generation and Hashing
=========================================
"""

from datetime import timedelta
from unittest.mock import patch

import bcrypt
import pytest

from otpauth_core.hashing import (
    build_hasher,
    hash_secret,
    hash_secret_sync,
    is_argon2_hash,
    is_bcrypt_hash,
    verify_secret,
    verify_secret_sync,
)
from otpauth_core.otp import OTPIssuer, generate_otp

from .conftest import FAST_HASHING


class TestGenerateOTP:
    """Tests for passcode generation."""

    def test_generate_otp_numeric(self):
        """Should generate a numeric OTP of the requested length."""
        otp = generate_otp(length=6)

        assert len(otp) == 6
        assert otp.isdigit()

    def test_generate_otp_custom_length(self):
        otp = generate_otp(length=8)

        assert len(otp) == 8
        assert otp.isdigit()

    def test_generate_otp_keeps_leading_zeros(self):
        """Small draws should be zero-padded, not shortened."""
        with patch("otpauth_core.otp.generator.secrets.randbelow", return_value=42) as draw:
            otp = generate_otp(length=6)

        assert otp == "000042"
        draw.assert_called_once_with(10 ** 6)

    def test_generate_otp_invalid_length(self):
        with pytest.raises(ValueError):
            generate_otp(length=0)

    def test_generate_otp_varies(self):
        """Consecutive passcodes should not repeat a fixed value."""
        otps = {generate_otp() for _ in range(50)}

        assert len(otps) > 1


class TestHashing:
    """Tests for Argon2id and legacy bcrypt hashing."""

    @pytest.fixture
    def hasher(self):
        return build_hasher(FAST_HASHING)

    def test_build_hasher_parameters(self, hasher):
        """Hasher should carry the configured cost."""
        assert hasher.time_cost == 1
        assert hasher.memory_cost == 8
        assert hasher.parallelism == 1

    @pytest.mark.asyncio
    async def test_hash_and_verify(self, hasher):
        """Should verify the hashed secret and reject others."""
        hashed = await hash_secret("correct horse", hasher)

        assert hashed.startswith("$argon2id$")
        assert await verify_secret("correct horse", hashed, hasher) is True
        assert await verify_secret("wrong horse", hashed, hasher) is False

    @pytest.mark.asyncio
    async def test_hash_is_salted(self, hasher):
        """Same secret should hash differently each time."""
        first = await hash_secret("123456", hasher)
        second = await hash_secret("123456", hasher)

        assert first != second

    @pytest.mark.asyncio
    async def test_hash_empty_secret(self, hasher):
        with pytest.raises(ValueError):
            await hash_secret("", hasher)

    @pytest.mark.asyncio
    async def test_verify_empty_inputs(self, hasher):
        hashed = hash_secret_sync("123456", hasher)

        assert await verify_secret("", hashed, hasher) is False
        assert await verify_secret("123456", "", hasher) is False

    def test_verify_legacy_bcrypt(self):
        """Hashes written by the previous service should still verify."""
        legacy = bcrypt.hashpw(b"482913", bcrypt.gensalt(rounds=4)).decode("utf-8")

        assert is_bcrypt_hash(legacy)
        assert verify_secret_sync("482913", legacy) is True
        assert verify_secret_sync("482914", legacy) is False

    def test_verify_malformed_hashes(self, hasher):
        """Corrupt or unknown hash formats should fail closed."""
        assert verify_secret_sync("123456", "$2b$12$broken", hasher) is False
        assert verify_secret_sync("123456", "$argon2id$garbage", hasher) is False
        assert verify_secret_sync("123456", "plaintext", hasher) is False

    def test_hash_format_detection(self, hasher):
        hashed = hash_secret_sync("secret", hasher)

        assert is_argon2_hash(hashed)
        assert not is_bcrypt_hash(hashed)
        assert not is_argon2_hash("")


class TestOTPIssuer:
    """Tests for challenge issuance."""

    @pytest.fixture
    def issuer(self):
        return OTPIssuer(length=6, ttl_seconds=300, hasher=build_hasher(FAST_HASHING))

    @pytest.mark.asyncio
    async def test_issue_challenge(self, issuer, clock):
        """Challenge should hold a hashed OTP expiring one TTL from now."""
        challenge = await issuer.issue(clock.now)

        assert len(challenge.otp) == 6
        assert challenge.otp not in challenge.otp_hash
        assert challenge.expires_at == clock.now + timedelta(seconds=300)
        assert challenge.ttl_seconds == 300

    @pytest.mark.asyncio
    async def test_challenge_matches(self, issuer, clock):
        challenge = await issuer.issue(clock.now)

        assert await issuer.matches(challenge.otp, challenge.otp_hash) is True
        assert await issuer.matches("not-it", challenge.otp_hash) is False
        assert await issuer.matches(challenge.otp, None) is False

    @pytest.mark.asyncio
    async def test_challenge_repr_hides_otp(self, issuer, clock):
        """Plaintext OTP must not leak through repr (logs, tracebacks)."""
        challenge = await issuer.issue(clock.now)

        assert challenge.otp not in repr(challenge)
