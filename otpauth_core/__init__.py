"""
OTP Auth Core
=============
Passwordless email one-time-passcode authentication: OTP issuance and
verification, account lockout, rate limiting and session tokens.
"""

__version__ = "1.0.0"

# Service
from otpauth_core.service import AuthService

# Configuration
from otpauth_core.config import (
    AuthConfig,
    HashingConfig,
    RateLimitConfig,
    RateLimitWindow,
)

# Errors
from otpauth_core.errors import (
    ErrorKind,
    AuthError,
    ValidationError,
    NotFound,
    AlreadyExists,
    AlreadyVerified,
    NotVerified,
    Deactivated,
    Locked,
    Expired,
    AttemptsExceeded,
    InvalidOTP,
    RateLimited,
    NotificationFailed,
    StoreUnavailable,
    Unauthenticated,
    ConfigurationFatal,
)

# Schemas
from otpauth_core.schemas import (
    RegisterRequest,
    VerifyOTPRequest,
    LoginRequest,
    ResendOTPRequest,
    OTPIssuedResponse,
    SessionResponse,
    LoginResponse,
    ProfileResponse,
    TokenStatusResponse,
)

# OTP
from otpauth_core.otp import OTPPurpose, OTPIssuer, generate_otp

# Store
from otpauth_core.store import (
    Account,
    CredentialStore,
    InMemoryCredentialStore,
    SQLAlchemyCredentialStore,
    create_engine_and_sessionmaker,
    create_tables,
)

# Rate Limiting
from otpauth_core.rate_limit import (
    AuthRateLimiter,
    InMemoryRateLimiter,
    RedisRateLimiter,
    SlidingWindowLimiter,
)

# Sessions
from otpauth_core.session import SessionIssuer, SessionToken

# Notifiers
from otpauth_core.notify import (
    Notifier,
    OTPMessage,
    InMemoryNotifier,
    HttpEmailNotifier,
)

# Logging
from otpauth_core.logging import setup_logging

__all__ = [
    # Service
    "AuthService",
    # Configuration
    "AuthConfig",
    "HashingConfig",
    "RateLimitConfig",
    "RateLimitWindow",
    # Errors
    "ErrorKind",
    "AuthError",
    "ValidationError",
    "NotFound",
    "AlreadyExists",
    "AlreadyVerified",
    "NotVerified",
    "Deactivated",
    "Locked",
    "Expired",
    "AttemptsExceeded",
    "InvalidOTP",
    "RateLimited",
    "NotificationFailed",
    "StoreUnavailable",
    "Unauthenticated",
    "ConfigurationFatal",
    # Schemas
    "RegisterRequest",
    "VerifyOTPRequest",
    "LoginRequest",
    "ResendOTPRequest",
    "OTPIssuedResponse",
    "SessionResponse",
    "LoginResponse",
    "ProfileResponse",
    "TokenStatusResponse",
    # OTP
    "OTPPurpose",
    "OTPIssuer",
    "generate_otp",
    # Store
    "Account",
    "CredentialStore",
    "InMemoryCredentialStore",
    "SQLAlchemyCredentialStore",
    "create_engine_and_sessionmaker",
    "create_tables",
    # Rate Limiting
    "AuthRateLimiter",
    "InMemoryRateLimiter",
    "RedisRateLimiter",
    "SlidingWindowLimiter",
    # Sessions
    "SessionIssuer",
    "SessionToken",
    # Notifiers
    "Notifier",
    "OTPMessage",
    "InMemoryNotifier",
    "HttpEmailNotifier",
    # Logging
    "setup_logging",
]
