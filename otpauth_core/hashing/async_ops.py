"""
Async Hash Operations
=====================
Event-loop friendly hashing and verification.

Argon2id is deliberately slow, so every call runs in the default executor.
"""

import asyncio
from functools import partial
from typing import Optional

from argon2 import PasswordHasher

from .sync_ops import hash_secret_sync, verify_secret_sync


async def hash_secret(secret: str, hasher: Optional[PasswordHasher] = None) -> str:
    """
    Hash a credential or OTP using Argon2id.

    Args:
        secret: Plain text secret to hash
        hasher: Hasher to use (cached production hasher when omitted)

    Returns:
        Argon2id hash string (includes algorithm, parameters, salt, and hash)

    Raises:
        ValueError: If the secret is empty
    """
    if not secret:
        raise ValueError("Secret cannot be empty")

    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(hash_secret_sync, secret, hasher))


async def verify_secret(
    secret: str,
    hash: str,
    hasher: Optional[PasswordHasher] = None,
) -> bool:
    """
    Verify a secret against an Argon2id or bcrypt hash.

    Comparison is constant-time, delegated to the algorithm's own verify.

    Args:
        secret: Plain text secret to verify
        hash: Hash to verify against (Argon2id or bcrypt format)
        hasher: Hasher to use for Argon2 hashes

    Returns:
        True if the secret matches, False otherwise
    """
    if not secret or not hash:
        return False

    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(verify_secret_sync, secret, hash, hasher))

