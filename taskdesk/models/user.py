"""
User model: identity, onboarding state & role-based access control.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String

from taskdesk.db.base import Base

ROLES = ("admin", "user")


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    first_name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    last_name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    # NULL until the invited user completes setup-password
    hashed_password: str | None = Column(String(128), nullable=True)  # type: ignore[assignment]
    mobile_number: str = Column(String(16), nullable=False)  # type: ignore[assignment]
    address: dict | None = Column(JSON, nullable=True)  # type: ignore[assignment]
    role: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="user",
        server_default="user",
    )  # admin | user
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    is_first_login: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]

    # Transient credentials: cleared after a single use
    reset_password_token: str | None = Column(String(64), nullable=True, index=True)  # type: ignore[assignment]
    reset_password_expire: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    otp: str | None = Column(String(6), nullable=True)  # type: ignore[assignment]
    otp_expire: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]

    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def clear_otp(self) -> None:
        self.otp = None
        self.otp_expire = None

    def clear_reset_token(self) -> None:
        self.reset_password_token = None
        self.reset_password_expire = None
