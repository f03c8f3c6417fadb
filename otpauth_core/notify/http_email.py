"""
HTTP Email Notifier
===================
Delivers passcodes through a JSON email API (SendGrid/Postmark/Resend style).
"""

from typing import Any, Dict, Optional

import httpx
import structlog

from ..errors import NotificationFailed
from ..logging import mask_email
from .base import Notifier, OTPMessage
from .templates import render_otp_email

logger = structlog.get_logger(__name__)


class HttpEmailNotifier(Notifier):
    """
    Posts rendered OTP emails to an HTTP email API.

    Payload:
        {"from": ..., "to": ..., "subject": ..., "text": ..., "tags": {...}}
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        sender: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_url: Endpoint accepting POSTed messages
            api_key: Bearer token for the email API
            sender: From address
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests, proxies)
        """
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def initialize(self) -> None:
        """Create HTTP client with auth."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
                transport=self._transport,
            )

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _payload(self, message: OTPMessage) -> Dict[str, Any]:
        email = render_otp_email(message)
        return {
            "from": self.sender,
            "to": email.to,
            "subject": email.subject,
            "text": email.text,
            "tags": {"category": f"otp-{message.purpose.value}"},
        }

    async def send_otp(self, message: OTPMessage) -> None:
        """Send an OTP email, raising NotificationFailed on any delivery error."""
        if not self._client:
            await self.initialize()

        try:
            response = await self._client.post(self.api_url, json=self._payload(message))
        except httpx.TimeoutException as e:
            logger.error("Email send timed out", email=mask_email(message.email), error=str(e))
            raise NotificationFailed("Timed out sending the verification email") from e
        except httpx.HTTPError as e:
            logger.error("Email send failed", email=mask_email(message.email), error=str(e))
            raise NotificationFailed("Failed to send the verification email") from e

        if response.status_code >= 300:
            logger.error(
                "Email API rejected message",
                email=mask_email(message.email),
                status_code=response.status_code,
                body=response.text[:200],
            )
            raise NotificationFailed(
                f"Email provider rejected the message (HTTP {response.status_code})"
            )

        logger.info(
            "OTP email sent",
            email=mask_email(message.email),
            purpose=message.purpose.value,
        )
