"""
OTP Models
==========
Data models and enums for OTP issuance.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class OTPPurpose(str, Enum):
    """What an issued passcode unlocks."""
    REGISTRATION = "registration"
    LOGIN = "login"


@dataclass(frozen=True)
class IssuedChallenge:
    """A freshly issued passcode and the values persisted for it."""
    otp: str = field(repr=False)
    otp_hash: str = field(repr=False)
    expires_at: datetime
    ttl_seconds: int
