from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class TokenPair(BaseModel):
    """Access and refresh tokens."""
    token_type: str = Field("bearer", description="Token type, typically 'bearer'")
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")


class RefreshRequest(BaseModel):
    """Request to refresh an access token."""
    refresh_token: str = Field(..., description="Refresh token")


class RegisterRequest(BaseModel):
    """Registration details for creating a new user."""
    email: EmailStr = Field(..., description="User email")
    password: str = Field(..., min_length=8, description="User password")
    name: Optional[str] = Field(None, max_length=120, description="Display name")


class LoginRequest(BaseModel):
    """Email/password credentials."""
    email: EmailStr = Field(..., description="User email")
    password: str = Field(..., min_length=8, description="User password")


class EmailRequest(BaseModel):
    """Payload carrying only an email (forgot password, temporary password)."""
    email: EmailStr = Field(...)


class ResetPasswordRequest(BaseModel):
    """Password reset with the token received by email."""
    email: EmailStr = Field(...)
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8)


class ForceChangePasswordRequest(BaseModel):
    """Change password, required after a temporary password was issued."""
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


class AuthUser(BaseModel):
    """User summary embedded in auth responses."""
    id: UUID = Field(..., description="User ID")
    email: str = Field(..., description="User email")
    name: Optional[str] = Field(None)
    tier: str = Field(..., description="FREE or PREMIUM")
    role: str = Field(..., description="USER, ADMIN, MANAGER or SUPPORT")

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    """User plus a fresh token pair."""
    user: AuthUser
    tokens: TokenPair


class CurrentUserRead(AuthUser):
    """Current user as returned by /auth/me."""
    email_verified: bool = Field(False)
    must_change_password: bool = Field(False)
    created_at: datetime = Field(..., description="Created timestamp")
