"""
Secret Hashing
==============
Async-safe one-way hashing for long-term credentials and one-time passcodes.

Both secrets go through the same Argon2id hasher: a leaked store gives an
attacker no cheaper path to a 6-digit OTP than to a password.

Legacy bcrypt hashes ($2a$, $2b$, $2y$) still verify, so challenges and
credentials imported from the previous service keep working.
"""

from .hasher import build_hasher, get_cached_hasher
from .async_ops import hash_secret, verify_secret
from .sync_ops import hash_secret_sync, verify_secret_sync
from .utils import is_bcrypt_hash, is_argon2_hash

__all__ = [
    # Hasher
    "build_hasher",
    "get_cached_hasher",
    # Async Operations
    "hash_secret",
    "verify_secret",
    # Sync Operations
    "hash_secret_sync",
    "verify_secret_sync",
    # Utils
    "is_bcrypt_hash",
    "is_argon2_hash",
]
