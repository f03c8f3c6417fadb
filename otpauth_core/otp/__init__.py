"""
OTP Generation and Issuance
===========================
Unpredictable numeric passcodes and the hashed challenges built from them.
"""

from .models import OTPPurpose, IssuedChallenge
from .generator import generate_otp
from .challenge import OTPIssuer

__all__ = [
    # Models
    "OTPPurpose",
    "IssuedChallenge",
    # Generator
    "generate_otp",
    # Issuer
    "OTPIssuer",
]
