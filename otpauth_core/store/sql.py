"""
SQL Credential Store
====================
SQLAlchemy-backed store with optimistic concurrency.

``save`` is a single conditional UPDATE keyed on ``(id, version)``; a
concurrent writer makes it match zero rows, which surfaces as
StaleAccountError instead of a silently lost update.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

import structlog
from sqlalchemy import Boolean, Integer, String, select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column

from .base import CredentialStore, DuplicateAccountError, StaleAccountError, TransientStoreError
from .database import Base, UTCDateTime
from .models import Account, normalize_email, utcnow

logger = structlog.get_logger(__name__)


class AccountRecord(Base):
    """Row in ``otp_accounts``."""

    __tablename__ = "otp_accounts"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    credential_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    otp_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    otp_expires_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    otp_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    login_failure_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    locked_until: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


# Columns a save may change; id, email and created_at are immutable.
_MUTABLE_FIELDS = (
    "name",
    "credential_hash",
    "verified",
    "active",
    "otp_hash",
    "otp_expires_at",
    "otp_attempts",
    "login_failure_count",
    "locked_until",
    "last_login_at",
)


def _to_account(record: AccountRecord) -> Account:
    return Account(
        id=record.id,
        email=record.email,
        name=record.name,
        credential_hash=record.credential_hash,
        verified=record.verified,
        active=record.active,
        otp_hash=record.otp_hash,
        otp_expires_at=record.otp_expires_at,
        otp_attempts=record.otp_attempts,
        login_failure_count=record.login_failure_count,
        locked_until=record.locked_until,
        last_login_at=record.last_login_at,
        created_at=record.created_at,
        updated_at=record.updated_at,
        version=record.version,
    )


class SQLAlchemyCredentialStore(CredentialStore):
    """Credential store over an async SQLAlchemy engine."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: Optional[AsyncEngine] = None,
    ):
        self._session_factory = session_factory
        self._engine = engine

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Session scope mapping connection-level failures to TransientStoreError."""
        try:
            async with self._session_factory() as session:
                yield session
        except (OperationalError, InterfaceError) as exc:
            logger.warning("Credential store unavailable", error=str(exc))
            raise TransientStoreError(str(exc)) from exc

    async def find_by_email(self, email: str) -> Optional[Account]:
        async with self._session() as session:
            result = await session.execute(
                select(AccountRecord).where(AccountRecord.email == normalize_email(email))
            )
            record = result.scalar_one_or_none()
            return _to_account(record) if record else None

    async def find_by_id(self, account_id: str) -> Optional[Account]:
        async with self._session() as session:
            record = await session.get(AccountRecord, account_id)
            return _to_account(record) if record else None

    async def create(self, account: Account) -> Account:
        now = utcnow()
        record = AccountRecord(
            id=account.id,
            email=normalize_email(account.email),
            created_at=account.created_at or now,
            updated_at=now,
            version=1,
            **{name: getattr(account, name) for name in _MUTABLE_FIELDS},
        )
        async with self._session() as session:
            session.add(record)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateAccountError(record.email) from exc
            logger.debug("Account created", account_id=record.id)
            return _to_account(record)

    async def save(self, account: Account, expected_version: int) -> Account:
        values = {name: getattr(account, name) for name in _MUTABLE_FIELDS}
        values["updated_at"] = utcnow()
        values["version"] = expected_version + 1

        async with self._session() as session:
            result = await session.execute(
                update(AccountRecord)
                .where(
                    AccountRecord.id == account.id,
                    AccountRecord.version == expected_version,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await session.rollback()
                raise StaleAccountError(account.id, expected_version)
            await session.commit()

            record = await session.get(AccountRecord, account.id, populate_existing=True)
            return _to_account(record)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("Database engine closed")
