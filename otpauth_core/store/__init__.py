"""
Credential Store
================
Persistence for per-account security state.
"""

from .models import Account, normalize_email
from .base import (
    CredentialStore,
    StoreError,
    TransientStoreError,
    DuplicateAccountError,
    StaleAccountError,
)
from .memory import InMemoryCredentialStore
from .database import Base, create_engine_and_sessionmaker, create_tables
from .sql import AccountRecord, SQLAlchemyCredentialStore

__all__ = [
    # Models
    "Account",
    "normalize_email",
    # Interface
    "CredentialStore",
    "StoreError",
    "TransientStoreError",
    "DuplicateAccountError",
    "StaleAccountError",
    # Backends
    "InMemoryCredentialStore",
    "SQLAlchemyCredentialStore",
    "AccountRecord",
    # Database
    "Base",
    "create_engine_and_sessionmaker",
    "create_tables",
]
