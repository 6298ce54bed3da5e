"""
Auth endpoints: invites, OTP verification, password setup, login,
forgot / reset password.
"""

from fastapi import APIRouter, Depends, Request

from taskdesk.api.deps import (get_current_active_user, get_identity_service,
                               require_admin)
from taskdesk.core.rate_limit import limiter
from taskdesk.models.user import User
from taskdesk.schemas.auth import (ForgotPasswordRequest, InviteAdminRequest,
                                   InviteUserRequest, LoginRequest,
                                   LoginResponse, MeResponse,
                                   ResetPasswordRequest, SetupPasswordRequest,
                                   TokenResponse, VerifyOtpRequest,
                                   VerifyOtpResponse)
from taskdesk.schemas.base import MessageResponse
from taskdesk.schemas.user import UserRead, UserSummary
from taskdesk.services.identity import IdentityService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/invite-admin", response_model=MessageResponse)
async def invite_admin(
    body: InviteAdminRequest,
    identity: IdentityService = Depends(get_identity_service),
) -> MessageResponse:
    """Invite an admin by email. Public, used to bootstrap a fresh install."""
    await identity.invite_admin(body.email)
    return MessageResponse(message="Admin invitation sent successfully")


@router.post("/invite-user", response_model=MessageResponse)
async def invite_user(
    body: InviteUserRequest,
    identity: IdentityService = Depends(get_identity_service),
    _admin: User = Depends(require_admin),
) -> MessageResponse:
    await identity.invite_user(
        body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        mobile_number=body.mobile_number,
        address=body.address.model_dump(exclude_none=True),
    )
    return MessageResponse(message="User invitation sent successfully")


@router.post("/verify-otp", response_model=VerifyOtpResponse)
@limiter.limit("10/minute")
async def verify_otp(
    request: Request,
    body: VerifyOtpRequest,
    identity: IdentityService = Depends(get_identity_service),
) -> VerifyOtpResponse:
    user_id = await identity.verify_otp(body.email, body.otp)
    return VerifyOtpResponse(message="OTP verified successfully", user_id=user_id)


@router.post("/setup-password", response_model=TokenResponse)
async def setup_password(
    body: SetupPasswordRequest,
    identity: IdentityService = Depends(get_identity_service),
) -> TokenResponse:
    token = await identity.setup_password(body.user_id, body.password)
    return TokenResponse(message="Password set successfully", token=token)


@router.post("/login", response_model=LoginResponse)
@limiter.limit("5/minute")
async def login(
    request: Request,
    body: LoginRequest,
    identity: IdentityService = Depends(get_identity_service),
) -> LoginResponse:
    token, user = await identity.login(body.email, body.password)
    return LoginResponse(user=UserSummary.model_validate(user), token=token)


@router.get("/me", response_model=MeResponse)
async def read_current_user(
    current_user: User = Depends(get_current_active_user),
) -> MeResponse:
    """Return profile of the currently authenticated user."""
    return MeResponse(data=UserRead.model_validate(current_user))


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit("3/minute")
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    identity: IdentityService = Depends(get_identity_service),
) -> MessageResponse:
    await identity.forgot_password(body.email, str(request.base_url))
    return MessageResponse(message="Email sent")


@router.put("/reset-password/{resettoken}", response_model=TokenResponse)
@limiter.limit("5/minute")
async def reset_password(
    request: Request,
    resettoken: str,
    body: ResetPasswordRequest,
    identity: IdentityService = Depends(get_identity_service),
) -> TokenResponse:
    token = await identity.reset_password(resettoken, body.password)
    return TokenResponse(message="Password updated successfully", token=token)
