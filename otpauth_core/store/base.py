"""
Credential Store Interface
==========================
Data access for account security state.

Stores hold no business logic. Every write is a compare-and-set on the
account version so concurrent read-modify-write cycles cannot lose updates.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .models import Account


class StoreError(Exception):
    """Base exception for credential store failures."""


class TransientStoreError(StoreError):
    """Temporary backend failure; the operation may be retried."""


class DuplicateAccountError(StoreError):
    """An account with this email already exists."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Account already exists for {email}")


class StaleAccountError(StoreError):
    """The stored version moved on since the account was read."""

    def __init__(self, account_id: str, expected_version: int):
        self.account_id = account_id
        self.expected_version = expected_version
        super().__init__(
            f"Account {account_id} was modified concurrently (expected version {expected_version})"
        )


class CredentialStore(ABC):
    """Async persistence for accounts."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[Account]:
        """Return the account for ``email`` (case-insensitive) or None."""

    @abstractmethod
    async def find_by_id(self, account_id: str) -> Optional[Account]:
        """Return the account with ``account_id`` or None."""

    @abstractmethod
    async def create(self, account: Account) -> Account:
        """
        Insert a new account.

        Returns:
            The stored account with ``version == 1``

        Raises:
            DuplicateAccountError: If the email is taken
        """

    @abstractmethod
    async def save(self, account: Account, expected_version: int) -> Account:
        """
        Persist all mutable fields of ``account`` if the stored version matches.

        Args:
            account: Mutated account
            expected_version: Version the caller read

        Returns:
            The stored account with the incremented version

        Raises:
            StaleAccountError: If another writer saved first
        """

    async def close(self) -> None:
        """Release backend resources."""
