from datetime import datetime
from typing import Literal, Optional

from pydantic import Field, field_validator

from shortener.config import settings
from shortener.schemas.base import CamelModel

OTP_LENGTH = settings.otp_length


def _normalize_email(value: str) -> str:
    cleaned = value.strip().lower()
    if "@" not in cleaned or cleaned.startswith("@") or cleaned.endswith("@"):
        raise ValueError("A valid email address is required")
    return cleaned


class EmailPayload(CamelModel):
    email: str = Field(min_length=3, max_length=255)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return _normalize_email(value)


class RegisterInitiateRequest(EmailPayload):
    name: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=6, max_length=128)
    role: Optional[Literal["user", "admin"]] = None
    admin_secret_key: Optional[str] = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Name is required")
        return cleaned


class RegisterVerifyRequest(EmailPayload):
    code: str = Field(min_length=OTP_LENGTH, max_length=OTP_LENGTH)

    @field_validator("code", mode="before")
    @classmethod
    def strip_code(cls, value):
        return value.strip() if isinstance(value, str) else value


class LoginRequest(EmailPayload):
    password: str = Field(min_length=1, max_length=128)


class ForgotPasswordRequest(EmailPayload):
    pass


class ResetPasswordRequest(RegisterVerifyRequest):
    new_password: str = Field(min_length=6, max_length=128)


class OtpDispatchResponse(CamelModel):
    message: str
    mode: Literal["email", "console"]


class UserPublic(CamelModel):
    id: int
    name: str
    email: str
    role: str
    created_at: Optional[datetime] = None


class AuthResponse(CamelModel):
    token: str
    user: UserPublic


class MeResponse(CamelModel):
    user: UserPublic
