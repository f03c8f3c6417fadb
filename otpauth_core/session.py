"""
Session Issuer
==============
Signed, time-bounded session tokens minted after successful verification.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt
import structlog

from .errors import ConfigurationFatal, Unauthenticated

logger = structlog.get_logger(__name__)

TOKEN_TYPE = "session"


@dataclass(frozen=True)
class SessionToken:
    """A minted token and when it stops being accepted."""
    token: str
    account_id: str
    expires_at: datetime
    expires_in_seconds: int


class SessionIssuer:
    """Mints and resolves HS256 JWT session tokens bound to an account id."""

    def __init__(
        self,
        secret: str,
        ttl_seconds: int = 3600,
        algorithm: str = "HS256",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            secret: Signing key; required
            ttl_seconds: Token lifetime
            algorithm: JWT signing algorithm
            clock: Source of the current UTC time

        Raises:
            ConfigurationFatal: If the signing key is missing
        """
        if not secret:
            raise ConfigurationFatal("Session signing secret is not configured")
        self._secret = secret
        self.ttl_seconds = ttl_seconds
        self.algorithm = algorithm
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def issue(self, account_id: str) -> SessionToken:
        """
        Mint a token for ``account_id``.

        Args:
            account_id: Account the token authenticates

        Returns:
            SessionToken
        """
        now = self._clock()
        expires_at = now + timedelta(seconds=self.ttl_seconds)
        payload = {
            "sub": account_id,
            "typ": TOKEN_TYPE,
            "jti": secrets.token_hex(8),
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self._secret, algorithm=self.algorithm)
        logger.info("Session token issued", account_id=account_id, expires_in=self.ttl_seconds)
        return SessionToken(
            token=token,
            account_id=account_id,
            expires_at=expires_at,
            expires_in_seconds=self.ttl_seconds,
        )

    def resolve(self, token: str) -> str:
        """
        Return the account id bound to a valid, unexpired token.

        Raises:
            Unauthenticated: Missing, malformed, forged or expired token
        """
        if not token:
            raise Unauthenticated("Not authorized, no token")

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={
                    "require": ["exp", "iat", "sub"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
            # Expiry is checked against the injected clock, not the wall clock
            if int(payload["exp"]) <= int(self._clock().timestamp()):
                raise jwt.ExpiredSignatureError("Signature has expired")
        except jwt.ExpiredSignatureError:
            raise Unauthenticated("Token expired")
        except jwt.InvalidTokenError:
            raise Unauthenticated("Invalid token")

        account_id = payload.get("sub")
        if payload.get("typ") != TOKEN_TYPE or not account_id:
            raise Unauthenticated("Invalid token payload")
        return account_id
