"""
Secret Hasher
=============
Argon2id hasher configuration and initialization.
"""

from functools import lru_cache
from typing import Optional

from argon2 import PasswordHasher, Type

from ..config import HashingConfig


def build_hasher(config: Optional[HashingConfig] = None) -> PasswordHasher:
    """
    Build an Argon2id hasher from cost parameters.

    Args:
        config: Cost parameters (production defaults when omitted)

    Returns:
        Configured PasswordHasher
    """
    config = config or HashingConfig()
    return PasswordHasher(
        time_cost=config.time_cost,
        memory_cost=config.memory_cost,
        parallelism=config.parallelism,
        hash_len=config.hash_len,
        salt_len=config.salt_len,
        type=Type.ID,
    )


@lru_cache(maxsize=1)
def get_cached_hasher() -> PasswordHasher:
    """Get cached hasher instance with production settings."""
    return build_hasher()
