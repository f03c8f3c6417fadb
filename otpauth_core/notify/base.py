"""
Notifier Interface
==================
Out-of-band delivery of plaintext passcodes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ..otp.models import OTPPurpose


@dataclass(frozen=True)
class OTPMessage:
    """A passcode addressed to one user."""
    email: str
    name: str
    otp: str = field(repr=False)
    purpose: OTPPurpose
    expires_in_seconds: int


class Notifier(ABC):
    """Delivers OTPs to the user's registered channel."""

    async def initialize(self) -> None:
        """Acquire delivery resources (HTTP clients, connections)."""

    async def close(self) -> None:
        """Release delivery resources."""

    @abstractmethod
    async def send_otp(self, message: OTPMessage) -> None:
        """
        Deliver a passcode.

        Raises:
            NotificationFailed: If delivery failed or timed out
        """
