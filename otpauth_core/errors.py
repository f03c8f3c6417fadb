"""
Authentication Errors
=====================
Error taxonomy surfaced by the authentication core.

Every error carries a stable machine-readable ``kind`` plus a human message,
so the presentation layer can map it to a status code without parsing text.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(str, Enum):
    """Stable error identifiers."""
    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    ALREADY_VERIFIED = "already_verified"
    NOT_VERIFIED = "not_verified"
    DEACTIVATED = "deactivated"
    LOCKED = "locked"
    EXPIRED = "expired"
    ATTEMPTS_EXCEEDED = "attempts_exceeded"
    INVALID_OTP = "invalid_otp"
    RATE_LIMITED = "rate_limited"
    NOTIFICATION_FAILED = "notification_failed"
    STORE_UNAVAILABLE = "store_unavailable"
    UNAUTHENTICATED = "unauthenticated"
    CONFIGURATION_FATAL = "configuration_fatal"


class AuthError(Exception):
    """Base exception for all authentication failures."""

    kind: ErrorKind = ErrorKind.VALIDATION
    default_message: str = "Authentication error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def extra(self) -> Dict[str, Any]:
        """Kind-specific fields added to the serialized error."""
        return {}

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        data.update(self.extra())
        return data

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class ValidationError(AuthError):
    """Malformed input, reported per field."""

    kind = ErrorKind.VALIDATION
    default_message = "Validation failed"

    def __init__(self, errors: Dict[str, List[str]], message: Optional[str] = None):
        self.errors = errors
        super().__init__(message)

    def extra(self) -> Dict[str, Any]:
        return {"errors": self.errors}


class NotFound(AuthError):
    kind = ErrorKind.NOT_FOUND
    default_message = "User not found"


class AlreadyExists(AuthError):
    kind = ErrorKind.ALREADY_EXISTS
    default_message = "User already exists and is verified"


class AlreadyVerified(AuthError):
    kind = ErrorKind.ALREADY_VERIFIED
    default_message = "User is already verified"


class NotVerified(AuthError):
    kind = ErrorKind.NOT_VERIFIED
    default_message = "Please verify your email first"


class Deactivated(AuthError):
    kind = ErrorKind.DEACTIVATED
    default_message = "Account is deactivated"


class Locked(AuthError):
    """Account is temporarily locked after repeated challenge exhaustion."""

    kind = ErrorKind.LOCKED
    default_message = "Account is temporarily locked due to too many failed attempts"

    def __init__(self, locked_until: Optional[datetime] = None, message: Optional[str] = None):
        self.locked_until = locked_until
        super().__init__(message)

    def extra(self) -> Dict[str, Any]:
        if self.locked_until is None:
            return {}
        return {"lockedUntil": self.locked_until.isoformat()}


class Expired(AuthError):
    kind = ErrorKind.EXPIRED
    default_message = "OTP has expired. Please request a new one."


class AttemptsExceeded(AuthError):
    kind = ErrorKind.ATTEMPTS_EXCEEDED
    default_message = "Maximum OTP attempts exceeded. Please request a new OTP."


class InvalidOTP(AuthError):
    kind = ErrorKind.INVALID_OTP
    default_message = "Invalid OTP"

    def __init__(self, attempts_remaining: int, message: Optional[str] = None):
        self.attempts_remaining = attempts_remaining
        super().__init__(message)

    def extra(self) -> Dict[str, Any]:
        return {"attemptsRemaining": self.attempts_remaining}


class RateLimited(AuthError):
    kind = ErrorKind.RATE_LIMITED
    default_message = "Too many requests, please try again later."

    def __init__(self, retry_after: int, message: Optional[str] = None):
        self.retry_after = retry_after
        super().__init__(message)

    def extra(self) -> Dict[str, Any]:
        return {"retryAfter": self.retry_after}


class NotificationFailed(AuthError):
    kind = ErrorKind.NOTIFICATION_FAILED
    default_message = "Failed to deliver the verification code"


class StoreUnavailable(AuthError):
    kind = ErrorKind.STORE_UNAVAILABLE
    default_message = "Credential store temporarily unavailable"


class Unauthenticated(AuthError):
    kind = ErrorKind.UNAUTHENTICATED
    default_message = "Not authorized, token failed"


class ConfigurationFatal(AuthError):
    """Raised at startup when the process cannot run safely (e.g. no signing key)."""

    kind = ErrorKind.CONFIGURATION_FATAL
    default_message = "Invalid authentication configuration"
