"""
Hash Utilities
==============
Format detection for stored hashes.
"""

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")
ARGON2_PREFIX = "$argon2"


def is_bcrypt_hash(hash: str) -> bool:
    """Legacy bcrypt hash, as written by earlier deployments."""
    return bool(hash) and hash.startswith(BCRYPT_PREFIXES)


def is_argon2_hash(hash: str) -> bool:
    return bool(hash) and hash.startswith(ARGON2_PREFIX)
