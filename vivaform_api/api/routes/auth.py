from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.deps import client_ip, get_current_user
from vivaform_api.db.models.users import User
from vivaform_api.db.session import get_async_session
from vivaform_api.schemas.auth import (
    AuthResponse,
    CurrentUserRead,
    EmailRequest,
    ForceChangePasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from vivaform_api.schemas.common import MessageResponse
from vivaform_api.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register user",
    description="Create an account, send a verification email and return the user with a token pair.",
)
async def register(
    payload: RegisterRequest,
    request: Request,
    session: AsyncSession = Depends(get_async_session),
) -> AuthResponse:
    """Register a new user."""
    return await AuthService(session).register(payload.email, payload.password, payload.name, client_ip(request))


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Login",
    description="Authenticate with email and password (JSON body) and receive access/refresh tokens.",
)
async def login(
    payload: LoginRequest,
    request: Request,
    session: AsyncSession = Depends(get_async_session),
) -> AuthResponse:
    return await AuthService(session).login(payload.email, payload.password, client_ip(request))


# PUBLIC_INTERFACE
@router.post(
    "/refresh",
    response_model=AuthResponse,
    summary="Refresh tokens",
    description="Exchange a valid refresh token for a new access/refresh pair.",
)
async def refresh(payload: RefreshRequest, session: AsyncSession = Depends(get_async_session)) -> AuthResponse:
    return await AuthService(session).refresh(payload.refresh_token)


# PUBLIC_INTERFACE
@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
    description="Stateless logout. Clients should discard tokens. No server state maintained.",
)
async def logout(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> MessageResponse:
    """Acknowledge logout in stateless JWT systems."""
    await AuthService(session).logout(user.id)
    return MessageResponse(message="Logged out")


# PUBLIC_INTERFACE
@router.get("/me", response_model=CurrentUserRead, summary="Read current user")
async def read_current_user(user: User = Depends(get_current_user)) -> CurrentUserRead:
    return CurrentUserRead.model_validate(user)


# PUBLIC_INTERFACE
@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    summary="Request password reset",
    description="Always returns the same message; a reset link is emailed when the account exists.",
)
async def forgot_password(payload: EmailRequest, session: AsyncSession = Depends(get_async_session)) -> MessageResponse:
    return MessageResponse(message=await AuthService(session).request_password_reset(payload.email))


# PUBLIC_INTERFACE
@router.post("/reset-password", response_model=MessageResponse, summary="Reset password with emailed token")
async def reset_password(payload: ResetPasswordRequest, session: AsyncSession = Depends(get_async_session)) -> MessageResponse:
    await AuthService(session).reset_password(payload.email, payload.token, payload.password)
    return MessageResponse(message="Password has been reset")


# PUBLIC_INTERFACE
@router.get("/verify-email", response_model=MessageResponse, summary="Verify email address")
async def verify_email(
    token: str = Query(..., min_length=1),
    session: AsyncSession = Depends(get_async_session),
) -> MessageResponse:
    await AuthService(session).verify_email(token)
    return MessageResponse(message="Email verified")


# PUBLIC_INTERFACE
@router.post(
    "/request-temp-password",
    response_model=MessageResponse,
    summary="Email a temporary password",
    description="Known accounts get a temporary password and must change it on next login.",
)
async def request_temp_password(payload: EmailRequest, session: AsyncSession = Depends(get_async_session)) -> MessageResponse:
    return MessageResponse(message=await AuthService(session).request_temporary_password(payload.email))


# PUBLIC_INTERFACE
@router.post("/force-change-password", response_model=MessageResponse, summary="Change password")
async def force_change_password(
    payload: ForceChangePasswordRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> MessageResponse:
    await AuthService(session).change_password(user, payload.current_password, payload.new_password)
    return MessageResponse(message="Password changed")
