"""
Sync Hash Operations
====================
Blocking hash and verify calls, run by the async wrappers in a thread pool.
"""

from typing import Optional

import bcrypt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from .hasher import get_cached_hasher
from .utils import is_argon2_hash, is_bcrypt_hash


def hash_secret_sync(secret: str, hasher: Optional[PasswordHasher] = None) -> str:
    """Synchronous version of hash_secret (use async version when possible)."""
    if not secret:
        raise ValueError("Secret cannot be empty")
    hasher = hasher or get_cached_hasher()
    return hasher.hash(secret)


def verify_secret_sync(
    secret: str,
    hash: str,
    hasher: Optional[PasswordHasher] = None,
) -> bool:
    """Synchronous version of verify_secret (use async version when possible)."""
    if not secret or not hash:
        return False

    if is_argon2_hash(hash):
        hasher = hasher or get_cached_hasher()
        try:
            return hasher.verify(hash, secret)
        except (VerificationError, InvalidHashError):
            return False

    if is_bcrypt_hash(hash):
        try:
            return bcrypt.checkpw(secret.encode("utf-8"), hash.encode("utf-8"))
        except ValueError:
            # Malformed salt
            return False

    return False
