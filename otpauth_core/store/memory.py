"""
In-Memory Credential Store
==========================
Dict-backed store for development and testing.

Use SQLAlchemyCredentialStore in production.
"""

import asyncio
from dataclasses import replace
from typing import Dict, Optional

import structlog

from .base import CredentialStore, DuplicateAccountError, StaleAccountError
from .models import Account, normalize_email, utcnow

logger = structlog.get_logger(__name__)


class InMemoryCredentialStore(CredentialStore):
    """
    Process-local store.

    Accounts are copied on the way in and out, so a caller mutating its
    copy never changes stored state without going through ``save``.
    """

    def __init__(self):
        self._accounts: Dict[str, Account] = {}
        self._ids_by_email: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def find_by_email(self, email: str) -> Optional[Account]:
        async with self._lock:
            account_id = self._ids_by_email.get(normalize_email(email))
            if account_id is None:
                return None
            return replace(self._accounts[account_id])

    async def find_by_id(self, account_id: str) -> Optional[Account]:
        async with self._lock:
            account = self._accounts.get(account_id)
            return replace(account) if account else None

    async def create(self, account: Account) -> Account:
        async with self._lock:
            email = normalize_email(account.email)
            if email in self._ids_by_email:
                raise DuplicateAccountError(email)

            stored = replace(account, email=email, version=1)
            self._accounts[stored.id] = stored
            self._ids_by_email[email] = stored.id
            logger.debug("Account created", account_id=stored.id)
            return replace(stored)

    async def save(self, account: Account, expected_version: int) -> Account:
        async with self._lock:
            current = self._accounts.get(account.id)
            if current is None or current.version != expected_version:
                raise StaleAccountError(account.id, expected_version)

            stored = replace(
                account,
                email=current.email,
                created_at=current.created_at,
                updated_at=utcnow(),
                version=expected_version + 1,
            )
            self._accounts[stored.id] = stored
            return replace(stored)

    def __len__(self) -> int:
        return len(self._accounts)
