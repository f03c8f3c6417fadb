"""
Authentication Service
======================
The OTP authentication state machine: registration, verification, login,
resend and session lookup.

Every read-modify-write of an account is an optimistic transaction: the
account is loaded, a copy is mutated by a decision function, and the copy
is saved conditionally on the version that was read. When another writer
got there first the decision is recomputed against fresh state.

Usage:
    service = AuthService.from_config(config, store=store, notifier=notifier)
    issued = await service.register(
        {"name": "Ada", "email": "ada@example.com", "secret": "hunter22"},
        client_ip="203.0.113.7",
    )
"""

from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

import structlog
from argon2 import PasswordHasher

from .config import AuthConfig
from .errors import (
    AlreadyExists,
    AlreadyVerified,
    AttemptsExceeded,
    AuthError,
    Deactivated,
    Expired,
    InvalidOTP,
    Locked,
    NotFound,
    NotificationFailed,
    NotVerified,
    StoreUnavailable,
    ValidationError,
)
from .hashing import build_hasher, hash_secret
from .logging import mask_email
from .notify.base import Notifier, OTPMessage
from .otp import IssuedChallenge, OTPIssuer, OTPPurpose
from .rate_limit.policy import AuthRateLimiter
from .retry import RetryExhausted, retry_with_backoff
from .schemas import (
    LoginRequest,
    LoginResponse,
    OTPIssuedResponse,
    ProfileResponse,
    RegisterRequest,
    ResendOTPRequest,
    SessionResponse,
    TokenStatusResponse,
    VerifyOTPRequest,
    parse_request,
)
from .session import SessionIssuer
from .store.base import (
    CredentialStore,
    DuplicateAccountError,
    StaleAccountError,
    TransientStoreError,
)
from .store.models import Account, utcnow

logger = structlog.get_logger(__name__)

R = TypeVar("R")

Decision = Callable[[Account, datetime], Awaitable[R]]

# Errors that reveal whether a login-capable account exists
_ACCOUNT_STATE_ERRORS = (NotFound, NotVerified, Deactivated)


class AuthService:
    """
    Orchestrates the store, OTP issuer, rate limiter, notifier and session
    issuer for each authentication operation.

    Operations accept either a request model or a plain mapping from the
    presentation layer, and raise ``AuthError`` subclasses on failure.
    """

    def __init__(
        self,
        store: CredentialStore,
        notifier: Notifier,
        session_issuer: SessionIssuer,
        config: Optional[AuthConfig] = None,
        rate_limiter: Optional[AuthRateLimiter] = None,
        clock: Optional[Callable[[], datetime]] = None,
        hasher: Optional[PasswordHasher] = None,
    ):
        """
        Args:
            store: Account persistence
            notifier: OTP delivery channel
            session_issuer: Token minting and resolution
            config: Limits and lifetimes
            rate_limiter: Request windows; None disables rate limiting
            clock: Source of the current UTC time
            hasher: Argon2id hasher; built from ``config.hashing`` if omitted
        """
        self.config = config or AuthConfig()
        self._store = store
        self._notifier = notifier
        self._sessions = session_issuer
        self._limiter = rate_limiter
        self._clock = clock or utcnow
        self._hasher = hasher or build_hasher(self.config.hashing)
        self._otp = OTPIssuer(
            length=self.config.otp_length,
            ttl_seconds=self.config.otp_ttl_seconds,
            hasher=self._hasher,
        )

    @classmethod
    def from_config(
        cls,
        config: AuthConfig,
        store: CredentialStore,
        notifier: Notifier,
        rate_limiter: Optional[AuthRateLimiter] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> "AuthService":
        """
        Validate ``config`` and wire a service with a matching session issuer.

        Raises:
            ConfigurationFatal: If the configuration is unusable
        """
        config.validate()
        session_issuer = SessionIssuer(
            secret=config.token_secret,
            ttl_seconds=config.token_ttl_seconds,
            algorithm=config.token_algorithm,
            clock=clock,
        )
        return cls(
            store=store,
            notifier=notifier,
            session_issuer=session_issuer,
            config=config,
            rate_limiter=rate_limiter,
            clock=clock,
        )

    # =========================================================================
    # Registration
    # =========================================================================

    async def register(self, request: Any, client_ip: Optional[str] = None) -> OTPIssuedResponse:
        """
        Create or refresh a pending account and send it a registration OTP.

        Re-registering an unverified email overwrites its name, credential and
        challenge.

        Args:
            request: RegisterRequest or mapping with name, email, secret
            client_ip: Caller address for the registration window

        Returns:
            OTPIssuedResponse (never contains the passcode)

        Raises:
            RateLimited: Registration or OTP generation window exhausted
            ValidationError: Malformed name, email or secret
            AlreadyExists: The email belongs to a verified account
            NotificationFailed: The passcode could not be delivered
        """
        if self._limiter is not None:
            await self._limiter.check_registration(client_ip)
        request = parse_request(RegisterRequest, request)
        self._check_registration_fields(request)
        if self._limiter is not None:
            await self._limiter.check_otp_generation(request.email, client_ip)

        credential_hash = await hash_secret(request.secret, self._hasher)
        challenge = await self._otp.issue(self._clock())

        for _ in range(self.config.max_write_conflicts):
            current = await self._store_call(self._store.find_by_email, request.email)

            if current is None:
                pending = Account(
                    email=request.email,
                    name=request.name,
                    credential_hash=credential_hash,
                    created_at=self._clock(),
                )
                pending.set_challenge(challenge.otp_hash, challenge.expires_at)
                try:
                    account = await self._store_call(self._store.create, pending)
                except DuplicateAccountError:
                    logger.info("Concurrent registration, retrying", email=mask_email(request.email))
                    continue
                break

            if current.verified:
                raise AlreadyExists()

            pending = current.copy()
            pending.name = request.name
            pending.credential_hash = credential_hash
            pending.set_challenge(challenge.otp_hash, challenge.expires_at)
            try:
                account = await self._store_call(self._store.save, pending, current.version)
            except StaleAccountError:
                logger.info("Concurrent account update, retrying", account_id=current.id)
                continue
            break
        else:
            raise self._contention(request.email)

        logger.info("Registration pending verification", account_id=account.id)
        await self._notify(account, challenge, OTPPurpose.REGISTRATION)
        return OTPIssuedResponse(email=account.email, otp_expires_in_seconds=challenge.ttl_seconds)

    async def verify_registration(
        self, request: Any, client_ip: Optional[str] = None
    ) -> SessionResponse:
        """
        Consume a registration OTP, mark the account verified and mint a session.

        Raises:
            NotFound, AlreadyVerified, AttemptsExceeded, Expired, InvalidOTP
        """
        request = parse_request(VerifyOTPRequest, request)
        if self._limiter is not None:
            await self._limiter.check_otp_verification(request.email, client_ip)

        async def decide(account: Account, now: datetime) -> None:
            if account.verified:
                raise AlreadyVerified()
            await self._consume_challenge(account, now, request.otp, escalate=False)
            account.verified = True

        account, _ = await self._transact(request.email, decide)
        logger.info("Account verified", account_id=account.id)

        session = self._sessions.issue(account.id)
        return SessionResponse(
            token=session.token,
            account_id=account.id,
            expires_in_seconds=session.expires_in_seconds,
        )

    # =========================================================================
    # Login
    # =========================================================================

    async def request_login_otp(
        self, request: Any, client_ip: Optional[str] = None
    ) -> OTPIssuedResponse:
        """
        Issue a login OTP to a verified, active, unlocked account.

        Raises:
            NotFound, NotVerified, Deactivated, Locked, NotificationFailed
        """
        request = parse_request(LoginRequest, request)
        if self._limiter is not None:
            await self._limiter.check_auth(request.email, client_ip)
            await self._limiter.check_otp_generation(request.email, client_ip)

        async def decide(account: Account, now: datetime) -> IssuedChallenge:
            self._require_login_capable(account, now)
            return await self._reissue(account, now)

        return await self._issue_login_challenge(request.email, decide, OTPPurpose.LOGIN)

    async def verify_login_otp(
        self, request: Any, client_ip: Optional[str] = None
    ) -> LoginResponse:
        """
        Consume a login OTP and mint a session.

        A wrong guess that uses up the challenge counts one login failure
        toward the account lock; so does retrying an exhausted challenge.

        Raises:
            NotFound, NotVerified, Deactivated, Locked, AttemptsExceeded,
            Expired, InvalidOTP
        """
        request = parse_request(VerifyOTPRequest, request)
        if self._limiter is not None:
            await self._limiter.check_otp_verification(request.email, client_ip)

        async def decide(account: Account, now: datetime) -> None:
            self._require_login_capable(account, now)
            await self._consume_challenge(account, now, request.otp, escalate=True)
            account.login_failure_count = 0
            account.locked_until = None
            account.last_login_at = now

        try:
            account, _ = await self._transact(request.email, decide)
        except _ACCOUNT_STATE_ERRORS as exc:
            if not self.config.conceal_account_state:
                raise
            logger.info(
                "Login verification for unusable account",
                email=mask_email(request.email),
                reason=exc.kind.value,
            )
            raise InvalidOTP(attempts_remaining=self.config.max_otp_attempts) from None

        logger.info("Login successful", account_id=account.id)
        session = self._sessions.issue(account.id)
        return LoginResponse(
            token=session.token,
            account_id=account.id,
            last_login_at=account.last_login_at,
            expires_in_seconds=session.expires_in_seconds,
        )

    # =========================================================================
    # Resend
    # =========================================================================

    async def resend_otp(self, request: Any, client_ip: Optional[str] = None) -> OTPIssuedResponse:
        """
        Replace the outstanding challenge for registration or login.

        The previous passcode stops working immediately. Resend never clears
        a lock or the login failure count.

        Raises:
            NotFound, AlreadyVerified (registration), NotVerified, Deactivated,
            Locked (login), NotificationFailed
        """
        request = parse_request(ResendOTPRequest, request)
        if self._limiter is not None:
            await self._limiter.check_otp_generation(request.email, client_ip)

        purpose = request.purpose

        async def decide(account: Account, now: datetime) -> IssuedChallenge:
            if purpose == OTPPurpose.REGISTRATION:
                if account.verified:
                    raise AlreadyVerified()
            else:
                self._require_login_capable(account, now)
            return await self._reissue(account, now)

        if purpose == OTPPurpose.LOGIN:
            return await self._issue_login_challenge(request.email, decide, purpose)

        account, challenge = await self._transact(request.email, decide)
        logger.info("Registration OTP resent", account_id=account.id)
        await self._notify(account, challenge, purpose)
        return OTPIssuedResponse(email=account.email, otp_expires_in_seconds=challenge.ttl_seconds)

    # =========================================================================
    # Sessions
    # =========================================================================

    async def get_profile(self, token: str) -> ProfileResponse:
        """
        Return the account behind a session token.

        Raises:
            Unauthenticated: Missing, invalid or expired token
            NotFound: The account no longer exists
        """
        account_id = self._sessions.resolve(token)
        account = await self._store_call(self._store.find_by_id, account_id)
        if account is None:
            raise NotFound()
        return ProfileResponse(
            account_id=account.id,
            email=account.email,
            name=account.name,
            verified=account.verified,
            active=account.active,
            last_login_at=account.last_login_at,
            created_at=account.created_at,
        )

    async def verify_token(self, token: str) -> TokenStatusResponse:
        """Check a session token. Raises Unauthenticated when it is not valid."""
        return TokenStatusResponse(account_id=self._sessions.resolve(token))

    # =========================================================================
    # Decisions
    # =========================================================================

    def _check_registration_fields(self, request: RegisterRequest) -> None:
        errors: Dict[str, List[str]] = {}
        if len(request.name) < self.config.min_name_length:
            errors["name"] = [f"Name must be at least {self.config.min_name_length} characters"]
        if len(request.secret) < self.config.min_secret_length:
            errors["secret"] = [
                f"Secret must be at least {self.config.min_secret_length} characters"
            ]
        if errors:
            raise ValidationError(errors)

    def _require_login_capable(self, account: Account, now: datetime) -> None:
        if not account.verified:
            raise NotVerified()
        if not account.active:
            raise Deactivated()
        if account.is_locked(now):
            raise Locked(locked_until=account.locked_until)

    async def _consume_challenge(
        self, account: Account, now: datetime, otp: str, escalate: bool
    ) -> None:
        """
        Check ``otp`` against the outstanding challenge and clear it on success.

        Failed guesses are recorded on ``account`` before raising; the
        transaction persists them.
        """
        max_attempts = self.config.max_otp_attempts

        if account.otp_attempts >= max_attempts:
            if escalate:
                self._escalate_lockout(account, now)
            raise AttemptsExceeded()

        if not account.has_challenge or account.is_otp_expired(now):
            raise Expired()

        if not await self._otp.matches(otp, account.otp_hash):
            account.otp_attempts += 1
            if escalate and account.otp_attempts >= max_attempts:
                self._escalate_lockout(account, now)
            raise InvalidOTP(attempts_remaining=max(0, max_attempts - account.otp_attempts))

        account.clear_challenge()

    def _escalate_lockout(self, account: Account, now: datetime) -> None:
        account.login_failure_count += 1
        if account.login_failure_count >= self.config.max_login_failures:
            account.locked_until = now + timedelta(seconds=self.config.lock_duration_seconds)
            account.login_failure_count = 0
            logger.warning(
                "Account locked",
                account_id=account.id,
                locked_until=account.locked_until.isoformat(),
            )

    async def _reissue(self, account: Account, now: datetime) -> IssuedChallenge:
        challenge = await self._otp.issue(now)
        account.set_challenge(challenge.otp_hash, challenge.expires_at)
        return challenge

    async def _issue_login_challenge(
        self,
        email: str,
        decide: Decision[IssuedChallenge],
        purpose: OTPPurpose,
    ) -> OTPIssuedResponse:
        try:
            account, challenge = await self._transact(email, decide)
        except _ACCOUNT_STATE_ERRORS as exc:
            if not self.config.conceal_account_state:
                raise
            logger.info(
                "Login OTP suppressed for unusable account",
                email=mask_email(email),
                reason=exc.kind.value,
            )
            return OTPIssuedResponse(email=email, otp_expires_in_seconds=self.config.otp_ttl_seconds)

        logger.info("Login OTP issued", account_id=account.id, purpose=purpose.value)
        await self._notify(account, challenge, purpose)
        return OTPIssuedResponse(email=account.email, otp_expires_in_seconds=challenge.ttl_seconds)

    # =========================================================================
    # Persistence and delivery
    # =========================================================================

    async def _transact(self, email: str, decide: Decision[R]) -> Tuple[Account, R]:
        """
        Run ``decide`` against the account for ``email`` and persist its changes.

        ``decide`` mutates the account it is given. When it raises an
        ``AuthError`` the mutations made so far are still saved before the
        error propagates, so failed guesses are never lost.

        Returns:
            (saved account, value returned by ``decide``)

        Raises:
            NotFound: No account for ``email``
            StoreUnavailable: Store unreachable or too much write contention
        """
        for _ in range(self.config.max_write_conflicts):
            current = await self._store_call(self._store.find_by_email, email)
            if current is None:
                raise NotFound()

            working = current.copy()
            now = self._clock()
            failure: Optional[AuthError] = None
            result = None
            try:
                result = await decide(working, now)
            except AuthError as exc:
                failure = exc

            if working != current:
                try:
                    working = await self._store_call(self._store.save, working, current.version)
                except StaleAccountError:
                    logger.info("Concurrent account update, retrying", account_id=current.id)
                    continue

            if failure is not None:
                raise failure
            return working, result

        raise self._contention(email)

    async def _store_call(self, func: Callable[..., Awaitable[R]], *args) -> R:
        try:
            return await retry_with_backoff(
                func,
                *args,
                max_attempts=self.config.store_retry_attempts,
                base_delay=self.config.store_retry_base_delay,
                retryable_exceptions={TransientStoreError},
            )
        except RetryExhausted as exc:
            raise StoreUnavailable() from exc

    def _contention(self, email: str) -> StoreUnavailable:
        logger.error(
            "Write conflicts exhausted",
            email=mask_email(email),
            attempts=self.config.max_write_conflicts,
        )
        return StoreUnavailable("Account is busy, please retry")

    async def _notify(
        self, account: Account, challenge: IssuedChallenge, purpose: OTPPurpose
    ) -> None:
        message = OTPMessage(
            email=account.email,
            name=account.name,
            otp=challenge.otp,
            purpose=purpose,
            expires_in_seconds=challenge.ttl_seconds,
        )
        try:
            await self._notifier.send_otp(message)
        except NotificationFailed as exc:
            logger.error(
                "OTP delivery failed",
                account_id=account.id,
                purpose=purpose.value,
                error=exc.message,
            )
            raise
        except Exception as exc:
            logger.error(
                "OTP delivery failed",
                account_id=account.id,
                purpose=purpose.value,
                error=str(exc),
            )
            raise NotificationFailed() from exc
