"""
FastAPI dependencies: database session, mail transport, auth guards.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk.core.config import settings
from taskdesk.core.exceptions import AccountDisabled, Forbidden, Unauthorized
from taskdesk.core.security import decode_access_token
from taskdesk.db.session import async_session_factory
from taskdesk.models.user import User
from taskdesk.services.identity import IdentityService
from taskdesk.services.mailer import Mailer, get_mailer

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/login", auto_error=False)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_identity_service(
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
) -> IdentityService:
    return IdentityService(db, mailer)


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the bearer JWT and load the user it names."""
    if not token:
        raise Unauthorized("Not authorized to access this route")

    payload = decode_access_token(token)
    if payload is None:
        raise Unauthorized()

    user_id: str | None = payload.get("sub")
    if user_id is None or not user_id.isdigit():
        raise Unauthorized()

    user = await db.get(User, int(user_id))
    if user is None:
        raise Unauthorized()
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Reject disabled accounts."""
    if not current_user.is_active:
        raise AccountDisabled()
    return current_user


async def require_admin(
    current_user: User = Depends(get_current_active_user),
) -> User:
    """Only allow admin role to proceed."""
    if current_user.role != "admin":
        raise Forbidden(f"User role {current_user.role} is not authorized to access this route")
    return current_user
