"""Pydantic schemas for User CRUD and user projections."""

from __future__ import annotations

from pydantic import Field, field_validator

from taskdesk.models.user import ROLES
from taskdesk.schemas.base import CamelModel, normalise_email, validate_mobile


class Coordinates(CamelModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class Address(CamelModel):
    location: str | None = None
    coordinates: Coordinates | None = None


class UserCreate(CamelModel):
    email: str
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    mobile_number: str
    address: Address | None = None
    role: str = "user"
    is_active: bool = True
    # Optional: without a password the user onboards through the OTP flow
    password: str | None = Field(default=None, min_length=6)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalise_email(v)

    @field_validator("mobile_number")
    @classmethod
    def _mobile(cls, v: str) -> str:
        return validate_mobile(v)

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str) -> str:
        if v not in ROLES:
            raise ValueError(f"Role must be one of: {', '.join(ROLES)}")
        return v


class UserUpdate(CamelModel):
    email: str | None = None
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    mobile_number: str | None = None
    address: Address | None = None
    role: str | None = None
    is_active: bool | None = None

    @field_validator("email")
    @classmethod
    def _email(cls, v: str | None) -> str | None:
        return normalise_email(v) if v is not None else v

    @field_validator("mobile_number")
    @classmethod
    def _mobile(cls, v: str | None) -> str | None:
        return validate_mobile(v) if v is not None else v

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str | None) -> str | None:
        if v is not None and v not in ROLES:
            raise ValueError(f"Role must be one of: {', '.join(ROLES)}")
        return v


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str = Field(min_length=6)


class UserRef(CamelModel):
    """Minimal projection used when tasks embed their users."""

    id: int
    first_name: str
    last_name: str
    email: str


class UserSummary(UserRef):
    role: str


class UserRead(UserSummary):
    mobile_number: str
    address: Address | None = None
    is_active: bool


class UserResponse(CamelModel):
    success: bool = True
    message: str | None = None
    data: UserRead
