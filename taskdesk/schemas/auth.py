"""Pydantic schemas for the invite / OTP / password endpoints."""

from __future__ import annotations

from pydantic import Field, field_validator

from taskdesk.schemas.base import CamelModel, normalise_email, validate_mobile
from taskdesk.schemas.user import Address, UserRead, UserSummary


class InviteAdminRequest(CamelModel):
    email: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalise_email(v)


class InviteUserRequest(InviteAdminRequest):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    mobile_number: str
    address: Address

    @field_validator("first_name", "last_name")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be empty")
        return v

    @field_validator("mobile_number")
    @classmethod
    def _mobile(cls, v: str) -> str:
        return validate_mobile(v)


class VerifyOtpRequest(CamelModel):
    email: str
    otp: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("otp", mode="before")
    @classmethod
    def _otp(cls, v: object) -> str:
        # clients sometimes post the code as a JSON number
        return str(v).strip() if isinstance(v, (str, int)) else v  # type: ignore[return-value]


class VerifyOtpResponse(CamelModel):
    success: bool = True
    message: str
    user_id: int


class SetupPasswordRequest(CamelModel):
    user_id: int
    password: str = Field(min_length=6)


class TokenResponse(CamelModel):
    success: bool = True
    message: str
    token: str


class LoginRequest(CamelModel):
    # Optional so a missing field is a 400 from the service, not a 422
    email: str | None = None
    password: str | None = None


class LoginResponse(CamelModel):
    success: bool = True
    user: UserSummary
    token: str


class MeResponse(CamelModel):
    success: bool = True
    data: UserRead


class ForgotPasswordRequest(CamelModel):
    email: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return v.strip().lower()


class ResetPasswordRequest(CamelModel):
    password: str = Field(min_length=6)
