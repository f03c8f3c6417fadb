"""
OTP Generator
=============
Cryptographically strong numeric passcodes.
"""

import secrets


def generate_otp(length: int = 6) -> str:
    """
    Generate a uniformly random numeric OTP.

    Every value in ``[0, 10**length)`` is equally likely, leading zeros
    included.

    Args:
        length: Number of digits

    Returns:
        OTP string of exactly ``length`` digits
    """
    if length <= 0:
        raise ValueError("OTP length must be positive")
    return str(secrets.randbelow(10 ** length)).zfill(length)
