from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import HTTPException, status
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.dates import ensure_utc, utcnow
from vivaform_api.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    generate_one_time_token,
    generate_temporary_password,
    get_password_hash,
    hash_one_time_token,
    verify_password,
)
from vivaform_api.core.settings import get_app_settings
from vivaform_api.db.models.users import User
from vivaform_api.repositories.users import UserRepository
from vivaform_api.schemas.auth import AuthResponse, AuthUser, TokenPair
from vivaform_api.services.audit import AuditAction, AuditService
from vivaform_api.services.base import BaseService
from vivaform_api.services.email import EmailService

logger = logging.getLogger(__name__)

# Same answer for known and unknown emails so accounts cannot be enumerated.
RESET_REQUESTED_MESSAGE = "If an account with that email exists, a password reset link has been sent."
TEMP_PASSWORD_MESSAGE = "If an account with that email exists, a temporary password has been sent."


# PUBLIC_INTERFACE
def issue_tokens(user: User) -> TokenPair:
    """Sign a new access/refresh pair for the user."""
    return TokenPair(
        access_token=create_access_token(str(user.id), user.email, user.role, user.tier),
        refresh_token=create_refresh_token(str(user.id), user.email),
    )


class AuthService(BaseService):
    """Registration, login, token refresh and password lifecycle."""

    def __init__(self, session: AsyncSession, email: Optional[EmailService] = None) -> None:
        super().__init__(session)
        self.users = UserRepository(session)
        self.audit = AuditService(session)
        self.email = email or EmailService()

    def _auth_response(self, user: User) -> AuthResponse:
        return AuthResponse(user=AuthUser.model_validate(user), tokens=issue_tokens(user))

    # PUBLIC_INTERFACE
    async def register(
        self, email: str, password: str, name: Optional[str] = None, ip_address: Optional[str] = None
    ) -> AuthResponse:
        """
        Create an account and return it with a token pair.

        Raises:
            HTTPException: 400 when the email is already registered.
        """
        if await self.users.get_by_email(email):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User with this email already exists")

        verification_token = generate_one_time_token()
        user = await self.users.create(
            email=email,
            password_hash=get_password_hash(password),
            name=name,
            email_verification_token=hash_one_time_token(verification_token),
        )
        logger.info("User registered: %s", user.id)
        await self.audit.log_registration(user.id, user.email, ip_address)
        await self.email.send_verification_email(user.email, verification_token)
        return self._auth_response(user)

    # PUBLIC_INTERFACE
    async def login(self, email: str, password: str, ip_address: Optional[str] = None) -> AuthResponse:
        """
        Validate credentials and issue tokens.

        Raises:
            HTTPException: 401 on unknown email or wrong password.
        """
        user = await self.users.get_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

        user.last_login_at = utcnow()
        await self.users.save(user)
        await self.audit.log_login(user.id, ip_address)
        return self._auth_response(user)

    # PUBLIC_INTERFACE
    async def refresh(self, refresh_token: str) -> AuthResponse:
        """
        Exchange a refresh token for a new token pair.

        Raises:
            HTTPException: 401 when the token does not verify or the user is gone.
        """
        try:
            claims: Dict[str, Any] = decode_refresh_token(refresh_token)
            user_id = UUID(str(claims.get("sub")))
        except (JWTError, ValueError):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

        user = await self.users.get_by_id(user_id)
        if not user:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
        return self._auth_response(user)

    async def logout(self, user_id: Optional[UUID]) -> None:
        await self.audit.log(AuditAction.USER_LOGOUT, user_id=user_id)

    # PUBLIC_INTERFACE
    async def request_password_reset(self, email: str) -> str:
        """Store a hashed one-hour reset token for a known email and mail the raw token."""
        user = await self.users.get_by_email(email)
        if user:
            token = generate_one_time_token()
            ttl = get_app_settings().PASSWORD_RESET_TTL_SECONDS
            user.password_reset_token = hash_one_time_token(token)
            user.password_reset_expires = utcnow() + timedelta(seconds=ttl)
            await self.users.save(user)
            await self.audit.log(AuditAction.PASSWORD_RESET_REQUESTED, user_id=user.id)
            await self.email.send_password_reset_email(user.email, token)
        else:
            logger.info("Password reset requested for unknown email")
        return RESET_REQUESTED_MESSAGE

    # PUBLIC_INTERFACE
    async def reset_password(self, email: str, token: str, new_password: str) -> None:
        """
        Set a new password using a reset token.

        Raises:
            HTTPException: 400 when the token is unknown, mismatched or expired.
        """
        user = await self.users.get_by_email(email)
        if (
            not user
            or not user.password_reset_token
            or user.password_reset_token != hash_one_time_token(token)
            or not user.password_reset_expires
            or ensure_utc(user.password_reset_expires) < utcnow()
        ):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired reset token")

        user.password_hash = get_password_hash(new_password)
        user.password_reset_token = None
        user.password_reset_expires = None
        user.must_change_password = False
        await self.users.save(user)
        await self.audit.log_password_change(user.id, AuditAction.PASSWORD_RESET)

    # PUBLIC_INTERFACE
    async def verify_email(self, token: str) -> None:
        """
        Mark the account owning the verification token as verified.

        Raises:
            HTTPException: 400 when the token is unknown.
        """
        user = await self.users.get_by_verification_token(hash_one_time_token(token))
        if not user:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid verification token")
        user.email_verified = True
        user.email_verification_token = None
        await self.users.save(user)
        await self.audit.log(AuditAction.EMAIL_VERIFIED, user_id=user.id)
        await self.email.send_welcome_email(user.email, user.name)

    # PUBLIC_INTERFACE
    async def request_temporary_password(self, email: str) -> str:
        """Replace the password of a known user with a mailed temporary one."""
        user = await self.users.get_by_email(email)
        if user:
            temporary = generate_temporary_password()
            user.password_hash = get_password_hash(temporary)
            user.must_change_password = True
            await self.users.save(user)
            await self.audit.log(AuditAction.TEMP_PASSWORD_REQUESTED, user_id=user.id)
            await self.email.send_temporary_password_email(user.email, temporary)
        return TEMP_PASSWORD_MESSAGE

    # PUBLIC_INTERFACE
    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        """
        Change the password of an authenticated user.

        Raises:
            HTTPException: 400 when the current password is wrong.
        """
        if not verify_password(current_password, user.password_hash):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
        user.password_hash = get_password_hash(new_password)
        user.must_change_password = False
        await self.users.save(user)
        await self.audit.log_password_change(user.id)
