"""
In-Memory Notifier
==================
Records passcodes instead of sending them. For development and testing.
"""

from typing import List, Optional

import structlog

from ..errors import NotificationFailed
from ..logging import mask_email
from ..otp.models import OTPPurpose
from .base import Notifier, OTPMessage

logger = structlog.get_logger(__name__)


class InMemoryNotifier(Notifier):
    """Keeps every delivered message in ``outbox``."""

    def __init__(self):
        self.outbox: List[OTPMessage] = []
        self.fail_next: Optional[str] = None

    async def send_otp(self, message: OTPMessage) -> None:
        if self.fail_next is not None:
            reason, self.fail_next = self.fail_next, None
            raise NotificationFailed(reason)
        self.outbox.append(message)
        logger.info(
            "OTP recorded",
            email=mask_email(message.email),
            purpose=message.purpose.value,
        )

    def last_otp(self, email: str, purpose: Optional[OTPPurpose] = None) -> Optional[str]:
        """Most recent passcode sent to ``email``."""
        email = email.strip().lower()
        for message in reversed(self.outbox):
            if message.email == email and (purpose is None or message.purpose == purpose):
                return message.otp
        return None
