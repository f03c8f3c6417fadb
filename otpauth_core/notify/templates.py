"""
OTP Email Templates
===================
Plain-text subject and body for each passcode purpose.
"""

from dataclasses import dataclass

from ..otp.models import OTPPurpose
from .base import OTPMessage


@dataclass(frozen=True)
class RenderedEmail:
    to: str
    subject: str
    text: str


_SUBJECTS = {
    OTPPurpose.REGISTRATION: "Email Verification - Your OTP Code",
    OTPPurpose.LOGIN: "Login Verification - Your OTP Code",
}

_INTROS = {
    OTPPurpose.REGISTRATION: (
        "Welcome! To complete your registration, verify your email address "
        "with this code: {otp}"
    ),
    OTPPurpose.LOGIN: "Someone is trying to sign in to your account. Your login code is: {otp}",
}

_FOOTERS = {
    OTPPurpose.REGISTRATION: "If you didn't request this verification, please ignore this email.",
    OTPPurpose.LOGIN: (
        "If this wasn't you, ignore this email and consider reviewing your account security."
    ),
}


def _format_expiry(seconds: int) -> str:
    if seconds % 60 == 0:
        minutes = seconds // 60
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    return f"{seconds} seconds"


def render_otp_email(message: OTPMessage) -> RenderedEmail:
    """
    Render the email for a passcode.

    Args:
        message: Passcode and recipient

    Returns:
        RenderedEmail ready for a transport
    """
    lines = [
        f"Hello {message.name or 'User'}!",
        "",
        _INTROS[message.purpose].format(otp=message.otp),
        "",
        f"This code will expire in {_format_expiry(message.expires_in_seconds)}.",
        "Never share this code with anyone. We will never ask for it by phone or email.",
        "",
        _FOOTERS[message.purpose],
    ]
    return RenderedEmail(
        to=message.email,
        subject=_SUBJECTS[message.purpose],
        text="\n".join(lines),
    )
