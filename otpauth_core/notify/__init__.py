"""
Notifiers
=========
Delivery adapters for one-time passcodes.
"""

from .base import Notifier, OTPMessage
from .templates import RenderedEmail, render_otp_email
from .memory import InMemoryNotifier
from .http_email import HttpEmailNotifier

__all__ = [
    "Notifier",
    "OTPMessage",
    "RenderedEmail",
    "render_otp_email",
    "InMemoryNotifier",
    "HttpEmailNotifier",
]
