"""
Request and Response Schemas
============================
Typed inputs and outputs for every authentication operation.

Responses serialize with camelCase aliases (``model_dump(by_alias=True)``)
matching what the presentation layer sends to clients.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .errors import ValidationError
from .otp.models import OTPPurpose

OTP_PATTERN = re.compile(r"^\d+$")
MAX_SECRET_LENGTH = 1024

T = TypeVar("T", bound=BaseModel)


class _Request(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("email", mode="before", check_fields=False)
    @classmethod
    def strip_email(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("email", mode="after", check_fields=False)
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        # Addresses are account keys; the local part is treated case-insensitively
        return value.lower()


class RegisterRequest(_Request):
    name: str = Field(max_length=200)
    email: EmailStr
    secret: str = Field(max_length=MAX_SECRET_LENGTH, repr=False)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Name must be at least 2 characters")
        return value.strip()


class VerifyOTPRequest(_Request):
    email: EmailStr
    otp: str = Field(repr=False)

    @field_validator("otp", mode="before")
    @classmethod
    def validate_otp(cls, value: Any) -> str:
        if isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        if not isinstance(value, str) or not OTP_PATTERN.match(value.strip()):
            raise ValueError("OTP must be numeric")
        return value.strip()


class LoginRequest(_Request):
    email: EmailStr


class ResendOTPRequest(_Request):
    email: EmailStr
    purpose: OTPPurpose


class _Response(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class OTPIssuedResponse(_Response):
    email: EmailStr
    otp_expires_in_seconds: int


class SessionResponse(_Response):
    token: str
    account_id: str
    expires_in_seconds: int


class LoginResponse(SessionResponse):
    last_login_at: datetime


class ProfileResponse(_Response):
    account_id: str
    email: EmailStr
    name: str
    verified: bool
    active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime


class TokenStatusResponse(_Response):
    account_id: str
    authenticated: bool = True


def _field_errors(exc: PydanticValidationError) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "__root__"
        message = error.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, []).append(message)
    return errors


def parse_request(model: Type[T], data: Any) -> T:
    """
    Validate an untyped payload into a request model.

    Args:
        model: Request model class
        data: Mapping from the transport layer, or an instance of ``model``

    Returns:
        Validated request

    Raises:
        ValidationError: With field-level messages
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(_field_errors(exc)) from exc
