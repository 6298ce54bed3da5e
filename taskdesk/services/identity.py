"""
Identity & onboarding.

A user moves through: invited (no password) -> OTP issued -> OTP verified
-> password set, and can enter the forgot / reset loop at any time after.
Every transition commits immediately. Email failures clear the token that
was about to be delivered before the error is raised, so a stored token is
always one the user actually received.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk.core.config import settings
from taskdesk.core.exceptions import (AccountDisabled, AlreadySet, BadRequest,
                                      Conflict, InvalidCredentials,
                                      InvalidOrExpiredOTP, InvalidToken,
                                      NotFound, NotificationFailure,
                                      PasswordNotSet)
from taskdesk.core.security import (RESET_TOKEN_EXPIRE_MINUTES,
                                    create_access_token, generate_otp,
                                    generate_reset_token, get_password_hash,
                                    hash_token, utcnow, verify_password)
from taskdesk.models.user import User
from taskdesk.services.mailer import Mailer, MailerError, otp_email, reset_email

logger = logging.getLogger(__name__)

# Placeholder profile for admins invited by email only
ADMIN_PLACEHOLDER = {
    "first_name": "Admin",
    "last_name": "User",
    "mobile_number": "+1234567890",
}


def session_token(user: User) -> str:
    return create_access_token(user.id, user.role)


class IdentityService:
    def __init__(self, db: AsyncSession, mailer: Mailer) -> None:
        self.db = db
        self.mailer = mailer

    async def _find_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    # ── Invites & OTP ───────────────────────────────────────────────
    async def invite_admin(self, email: str) -> User:
        return await self._invite(email, role="admin", **ADMIN_PLACEHOLDER)

    async def invite_user(
        self,
        email: str,
        first_name: str,
        last_name: str,
        mobile_number: str,
        address: dict | None,
    ) -> User:
        return await self._invite(
            email,
            role="user",
            first_name=first_name,
            last_name=last_name,
            mobile_number=mobile_number,
            address=address,
        )

    async def _invite(self, email: str, role: str, **profile) -> User:
        if await self._find_by_email(email) is not None:
            raise Conflict("User already exists")

        user = User(email=email.strip().lower(), role=role, is_first_login=True, **profile)
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        logger.info("Invited %s %s (id %d)", role, user.email, user.id)

        # The user row stays even if the OTP email fails; the caller sees
        # NotificationFailure and the record is left in the invited state.
        await self.send_otp(user)
        return user

    async def send_otp(self, user: User) -> str:
        """Issue a fresh OTP, email it, and return the plaintext code."""
        otp = generate_otp()
        user.otp = otp
        user.otp_expire = utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)
        await self.db.commit()

        message = otp_email(user.email, user.first_name, otp, settings.OTP_EXPIRE_MINUTES)
        try:
            await self.mailer.send(message)
        except MailerError:
            logger.warning("OTP email to %s failed; clearing OTP", user.email)
            user.clear_otp()
            await self.db.commit()
            raise NotificationFailure()

        logger.info("OTP sent to %s", user.email)
        return otp

    async def verify_otp(self, email: str, otp: str) -> int:
        result = await self.db.execute(
            select(User).where(
                User.email == email.strip().lower(),
                User.otp == otp,
                User.otp_expire > utcnow(),
            )
        )
        user = result.scalar_one_or_none()
        if user is None:
            # Same answer for unknown email, wrong code and expired code
            raise InvalidOrExpiredOTP()

        user.clear_otp()
        await self.db.commit()
        logger.info("OTP verified for user %d", user.id)
        return user.id

    # ── Passwords ───────────────────────────────────────────────────
    async def setup_password(self, user_id: int, password: str) -> str:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        if not user.is_first_login:
            raise AlreadySet()

        user.hashed_password = get_password_hash(password)
        user.is_first_login = False
        await self.db.commit()
        logger.info("Initial password set for user %d", user.id)
        return session_token(user)

    async def login(self, email: str | None, password: str | None) -> tuple[str, User]:
        if not email or not password:
            raise BadRequest("Please provide email and password")

        user = await self._find_by_email(email)
        if user is None:
            raise InvalidCredentials()
        if not user.is_active:
            raise AccountDisabled()
        if user.is_first_login or not user.hashed_password:
            raise PasswordNotSet()
        if not verify_password(password, user.hashed_password):
            raise InvalidCredentials()

        return session_token(user), user

    async def forgot_password(self, email: str, base_url: str) -> str:
        """Email a reset link; return the plaintext token."""
        user = await self._find_by_email(email)
        if user is None:
            raise NotFound("No user found with that email")

        token, digest = generate_reset_token()
        user.reset_password_token = digest
        user.reset_password_expire = utcnow() + timedelta(minutes=RESET_TOKEN_EXPIRE_MINUTES)
        await self.db.commit()

        reset_url = f"{base_url.rstrip('/')}/reset-password/{token}"
        try:
            await self.mailer.send(reset_email(user.email, reset_url))
        except MailerError:
            logger.warning("Reset email to %s failed; clearing reset token", user.email)
            user.clear_reset_token()
            await self.db.commit()
            raise NotificationFailure()

        logger.info("Password reset requested for user %d", user.id)
        return token

    async def reset_password(self, token: str, password: str) -> str:
        result = await self.db.execute(
            select(User).where(
                User.reset_password_token == hash_token(token),
                User.reset_password_expire > utcnow(),
            )
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise InvalidToken()

        user.hashed_password = get_password_hash(password)
        user.is_first_login = False
        user.clear_reset_token()
        await self.db.commit()
        logger.info("Password reset for user %d", user.id)
        return session_token(user)

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        if not user.hashed_password:
            raise PasswordNotSet()
        if not verify_password(current_password, user.hashed_password):
            raise InvalidCredentials("Current password is incorrect")

        user.hashed_password = get_password_hash(new_password)
        await self.db.commit()
        logger.info("Password changed for user %d", user.id)
