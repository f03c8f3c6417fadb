"""
Account Model
=============
Per-account security state and its derived predicates.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional


def normalize_email(email: str) -> str:
    """Emails are case-insensitive keys."""
    return (email or "").strip().lower()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_account_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Account:
    """
    An account and its single outstanding OTP challenge.

    ``version`` is owned by the store: it is bumped on every successful save
    and used as the compare-and-set guard.
    """
    email: str
    name: str
    credential_hash: str
    id: str = field(default_factory=new_account_id)
    verified: bool = False
    active: bool = True
    otp_hash: Optional[str] = field(default=None, repr=False)
    otp_expires_at: Optional[datetime] = None
    otp_attempts: int = 0
    login_failure_count: int = 0
    locked_until: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    version: int = 0

    def __post_init__(self):
        self.email = normalize_email(self.email)

    @property
    def has_challenge(self) -> bool:
        return self.otp_hash is not None

    def is_otp_expired(self, now: datetime) -> bool:
        """True when there is no live challenge at ``now``."""
        if self.otp_expires_at is None:
            return True
        return now > self.otp_expires_at

    def is_locked(self, now: datetime) -> bool:
        return self.locked_until is not None and now < self.locked_until

    def set_challenge(self, otp_hash: str, expires_at: datetime) -> None:
        """Overwrite the outstanding challenge; attempts start over."""
        self.otp_hash = otp_hash
        self.otp_expires_at = expires_at
        self.otp_attempts = 0

    def clear_challenge(self) -> None:
        self.otp_hash = None
        self.otp_expires_at = None
        self.otp_attempts = 0

    def copy(self) -> "Account":
        return replace(self)
