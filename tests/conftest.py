"""
Shared fixtures for otpauth-core tests.
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from otpauth_core.config import AuthConfig, HashingConfig
from otpauth_core.hashing import build_hasher
from otpauth_core.notify import InMemoryNotifier
from otpauth_core.otp import OTPPurpose
from otpauth_core.service import AuthService
from otpauth_core.session import SessionIssuer
from otpauth_core.store import InMemoryCredentialStore

# Argon2 at minimum cost; production parameters make the suite crawl
FAST_HASHING = HashingConfig(time_cost=1, memory_cost=8, parallelism=1, hash_len=16, salt_len=8)

TOKEN_SECRET = "test-signing-secret-0123456789-abcdefghijklmnop"

EMAIL = "ada@example.com"
NAME = "Ada Lovelace"
SECRET = "analytical-engine"


class FakeClock:
    """Controllable UTC clock shared by the service, sessions and limiters."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)

    def timestamp(self) -> float:
        return self.now.timestamp()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def hasher():
    return build_hasher(FAST_HASHING)


@pytest.fixture
def config():
    return AuthConfig(
        token_secret=TOKEN_SECRET,
        hashing=FAST_HASHING,
        store_retry_base_delay=0.0,
    )


@pytest.fixture
def store():
    return InMemoryCredentialStore()


@pytest.fixture
def notifier():
    return InMemoryNotifier()


@pytest.fixture
def session_issuer(clock):
    return SessionIssuer(secret=TOKEN_SECRET, clock=clock)


@pytest.fixture
def service(store, notifier, session_issuer, config, clock, hasher):
    return AuthService(
        store=store,
        notifier=notifier,
        session_issuer=session_issuer,
        config=config,
        clock=clock,
        hasher=hasher,
    )


@pytest_asyncio.fixture
async def verified_account(service, store, notifier):
    """A registered and verified account, ready to log in."""
    await service.register({"name": NAME, "email": EMAIL, "secret": SECRET})
    otp = notifier.last_otp(EMAIL, OTPPurpose.REGISTRATION)
    await service.verify_registration({"email": EMAIL, "otp": otp})
    notifier.outbox.clear()
    return await store.find_by_email(EMAIL)
