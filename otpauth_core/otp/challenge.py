"""
OTP Issuer
==========
Builds hashed, time-bounded challenges.
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog
from argon2 import PasswordHasher

from ..hashing import hash_secret, verify_secret
from .generator import generate_otp
from .models import IssuedChallenge

logger = structlog.get_logger(__name__)


class OTPIssuer:
    """Generates passcodes and hashes them with the credential hasher."""

    def __init__(
        self,
        length: int = 6,
        ttl_seconds: int = 300,
        hasher: Optional[PasswordHasher] = None,
    ):
        self.length = length
        self.ttl_seconds = ttl_seconds
        self.hasher = hasher

    async def issue(self, now: datetime) -> IssuedChallenge:
        """
        Create a new challenge valid from ``now``.

        Args:
            now: Issuance time (timezone-aware UTC)

        Returns:
            IssuedChallenge holding the plaintext OTP for delivery
        """
        otp = generate_otp(self.length)
        otp_hash = await hash_secret(otp, self.hasher)
        challenge = IssuedChallenge(
            otp=otp,
            otp_hash=otp_hash,
            expires_at=now + timedelta(seconds=self.ttl_seconds),
            ttl_seconds=self.ttl_seconds,
        )
        logger.debug("OTP challenge issued", expires_at=challenge.expires_at.isoformat())
        return challenge

    async def matches(self, otp: str, otp_hash: Optional[str]) -> bool:
        """Constant-time check of a submitted passcode against a stored hash."""
        if not otp_hash:
            return False
        return await verify_secret(otp, otp_hash, self.hasher)
