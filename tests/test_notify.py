"""
Unit Tests for Notifiers
========================
"""

import json

import httpx
import pytest

from otpauth_core.errors import NotificationFailed
from otpauth_core.notify import (
    HttpEmailNotifier,
    InMemoryNotifier,
    OTPMessage,
    render_otp_email,
)
from otpauth_core.otp import OTPPurpose


def make_message(purpose=OTPPurpose.REGISTRATION, expires_in_seconds=300):
    return OTPMessage(
        email="ada@example.com",
        name="Ada",
        otp="042917",
        purpose=purpose,
        expires_in_seconds=expires_in_seconds,
    )


class TestTemplates:
    """Tests for plain-text email rendering."""

    def test_registration_email(self):
        email = render_otp_email(make_message())

        assert email.to == "ada@example.com"
        assert email.subject == "Email Verification - Your OTP Code"
        assert "Hello Ada!" in email.text
        assert "042917" in email.text
        assert "expire in 5 minutes" in email.text

    def test_login_email(self):
        email = render_otp_email(make_message(OTPPurpose.LOGIN))

        assert email.subject == "Login Verification - Your OTP Code"
        assert "login code is: 042917" in email.text

    def test_odd_expiry(self):
        email = render_otp_email(make_message(expires_in_seconds=90))

        assert "expire in 90 seconds" in email.text

    def test_message_repr_hides_otp(self):
        assert "042917" not in repr(make_message())


class TestInMemoryNotifier:
    """Tests for the recording notifier."""

    @pytest.mark.asyncio
    async def test_records_messages(self):
        notifier = InMemoryNotifier()

        await notifier.send_otp(make_message())
        await notifier.send_otp(make_message(OTPPurpose.LOGIN))

        assert len(notifier.outbox) == 2
        assert notifier.last_otp("ADA@example.com") == "042917"
        assert notifier.last_otp("ada@example.com", OTPPurpose.LOGIN) == "042917"
        assert notifier.last_otp("other@example.com") is None

    @pytest.mark.asyncio
    async def test_fail_next(self):
        """A scheduled failure should fire once."""
        notifier = InMemoryNotifier()
        notifier.fail_next = "mailbox full"

        with pytest.raises(NotificationFailed) as exc_info:
            await notifier.send_otp(make_message())

        assert exc_info.value.message == "mailbox full"
        await notifier.send_otp(make_message())
        assert len(notifier.outbox) == 1


class TestHttpEmailNotifier:
    """Tests for the HTTP email API adapter."""

    def make_notifier(self, handler):
        return HttpEmailNotifier(
            api_url="https://mail.example.test/v1/send",
            api_key="key-123",
            sender="no-reply@example.test",
            transport=httpx.MockTransport(handler),
        )

    @pytest.mark.asyncio
    async def test_send(self):
        """Should POST the rendered email with bearer auth."""
        captured = []

        def handler(request):
            captured.append(request)
            return httpx.Response(202, json={"id": "msg-1"})

        notifier = self.make_notifier(handler)
        await notifier.send_otp(make_message(OTPPurpose.LOGIN))
        await notifier.close()

        request = captured[0]
        assert request.method == "POST"
        assert str(request.url) == "https://mail.example.test/v1/send"
        assert request.headers["Authorization"] == "Bearer key-123"

        payload = json.loads(request.content)
        assert payload["from"] == "no-reply@example.test"
        assert payload["to"] == "ada@example.com"
        assert payload["subject"] == "Login Verification - Your OTP Code"
        assert "042917" in payload["text"]
        assert payload["tags"] == {"category": "otp-login"}

    @pytest.mark.asyncio
    async def test_rejected(self):
        notifier = self.make_notifier(lambda request: httpx.Response(500, text="upstream"))

        with pytest.raises(NotificationFailed) as exc_info:
            await notifier.send_otp(make_message())

        assert "HTTP 500" in exc_info.value.message
        await notifier.close()

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        notifier = self.make_notifier(handler)

        with pytest.raises(NotificationFailed) as exc_info:
            await notifier.send_otp(make_message())

        assert exc_info.value.message == "Timed out sending the verification email"
        await notifier.close()

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        notifier = self.make_notifier(handler)

        with pytest.raises(NotificationFailed) as exc_info:
            await notifier.send_otp(make_message())

        assert exc_info.value.message == "Failed to send the verification email"
        await notifier.close()

    @pytest.mark.asyncio
    async def test_initialize_and_close(self):
        notifier = self.make_notifier(lambda request: httpx.Response(200))

        await notifier.initialize()
        assert notifier._client is not None

        await notifier.close()
        assert notifier._client is None
