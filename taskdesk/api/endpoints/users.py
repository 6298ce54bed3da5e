"""
User management endpoints.

- Every route except change-password requires the admin role.
- DELETE deactivates the account; task history keeps its references.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk.api.deps import (get_current_active_user, get_db,
                               get_identity_service, require_admin)
from taskdesk.core.exceptions import BadRequest, Conflict, NotFound
from taskdesk.core.security import get_password_hash
from taskdesk.models.user import User
from taskdesk.schemas.base import MessageResponse
from taskdesk.schemas.listing import UserListResponse
from taskdesk.schemas.user import (ChangePasswordRequest, UserCreate, UserRead,
                                   UserResponse, UserUpdate)
from taskdesk.services.identity import IdentityService
from taskdesk.services.listing import ListQuery

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)

user_listing = ListQuery(
    model=User,
    fields={
        "firstName": User.first_name,
        "lastName": User.last_name,
        "email": User.email,
        "role": User.role,
        "isActive": User.is_active,
        "isFirstLogin": User.is_first_login,
        "createdAt": User.created_at,
    },
)


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


async def _ensure_email_free(db: AsyncSession, email: str) -> None:
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise Conflict("User already exists")


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_active_user),
    identity: IdentityService = Depends(get_identity_service),
) -> MessageResponse:
    await identity.change_password(current_user, body.current_password, body.new_password)
    return MessageResponse(message="Password updated successfully")


@router.get("", response_model=UserListResponse)
async def list_users(
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> UserListResponse:
    page = await user_listing.execute(db, request.query_params.multi_items(), admin)
    return UserListResponse(
        count=len(page.items),
        pagination=page.pagination,
        data=[UserRead.model_validate(u) for u in page.items],
    )


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> UserResponse:
    """Create a user directly. With a password the account can log in at once."""
    await _ensure_email_free(db, body.email)

    fields = body.model_dump(exclude={"password", "address"})
    user = User(**fields)
    if body.address is not None:
        user.address = body.address.model_dump(exclude_none=True)
    if body.password:
        user.hashed_password = get_password_hash(body.password)
        user.is_first_login = False

    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Created %s %s (id %d)", user.role, user.email, user.id)
    return UserResponse(message="User created successfully", data=UserRead.model_validate(user))


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> UserResponse:
    user = await _get_user_or_404(db, user_id)
    return UserResponse(data=UserRead.model_validate(user))


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> UserResponse:
    user = await _get_user_or_404(db, user_id)
    changes = body.model_dump(exclude_unset=True)

    if changes.get("email") and changes["email"] != user.email:
        await _ensure_email_free(db, changes["email"])
    if "address" in changes and body.address is not None:
        changes["address"] = body.address.model_dump(exclude_none=True)

    for field, value in changes.items():
        # only the address can be cleared; other profile fields are replaced
        if value is None and field != "address":
            continue
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    logger.info("Updated user %d", user_id)
    return UserResponse(message="User updated successfully", data=UserRead.model_validate(user))


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> MessageResponse:
    """Soft-delete (deactivate) a user. Their tasks are preserved."""
    if user_id == admin.id:
        raise BadRequest("You cannot deactivate your own account")

    user = await _get_user_or_404(db, user_id)
    user.is_active = False
    await db.commit()
    logger.info("Deactivated user %d (%s)", user_id, user.email)
    return MessageResponse(message=f"User '{user.email}' deactivated")
