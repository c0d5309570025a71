from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from vivaform_api.core.settings import get_app_settings

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


# PUBLIC_INTERFACE
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hashed password using bcrypt."""
    return _pwd_context.verify(plain_password, hashed_password)


# PUBLIC_INTERFACE
def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt."""
    return _pwd_context.hash(password)


def _create_token(
    data: Dict[str, Any],
    expires_delta: timedelta,
    token_type: str,
    secret: str,
) -> str:
    settings = get_app_settings()
    to_encode = data.copy()
    now = datetime.now(tz=timezone.utc)
    to_encode.update({"exp": now + expires_delta, "iat": now, "type": token_type})
    return jwt.encode(to_encode, secret, algorithm=settings.JWT_ALGORITHM)


# PUBLIC_INTERFACE
def create_access_token(
    subject: str,
    email: str,
    role: str,
    tier: str,
    expires_seconds: Optional[int] = None,
) -> str:
    """Create a short-lived access token carrying the user's id, email, role and tier."""
    settings = get_app_settings()
    exp = timedelta(seconds=expires_seconds or settings.ACCESS_TOKEN_TTL_SECONDS)
    payload: Dict[str, Any] = {"sub": subject, "email": email, "role": role, "tier": tier}
    return _create_token(payload, exp, ACCESS_TOKEN_TYPE, settings.JWT_SECRET)


# PUBLIC_INTERFACE
def create_refresh_token(subject: str, email: str, expires_seconds: Optional[int] = None) -> str:
    """Create a refresh token signed with the dedicated refresh secret."""
    settings = get_app_settings()
    exp = timedelta(seconds=expires_seconds or settings.REFRESH_TOKEN_TTL_SECONDS)
    payload = {"sub": subject, "email": email}
    return _create_token(payload, exp, REFRESH_TOKEN_TYPE, settings.JWT_REFRESH_SECRET)


def _decode(token: str, secret: str, expected_type: str) -> Dict[str, Any]:
    payload = jwt.decode(token, secret, algorithms=[get_app_settings().JWT_ALGORITHM])
    # access and refresh secrets may be configured identically
    if payload.get("type") != expected_type:
        raise JWTError(f"Expected a {expected_type} token")
    return payload


# PUBLIC_INTERFACE
def decode_token(token: str) -> Dict[str, Any]:
    """Verify an access token; raises JWTError when invalid, expired or of the wrong type."""
    return _decode(token, get_app_settings().JWT_SECRET, ACCESS_TOKEN_TYPE)


# PUBLIC_INTERFACE
def decode_refresh_token(token: str) -> Dict[str, Any]:
    """Verify a refresh token signed with JWT_REFRESH_SECRET."""
    return _decode(token, get_app_settings().JWT_REFRESH_SECRET, REFRESH_TOKEN_TYPE)


# PUBLIC_INTERFACE
def generate_one_time_token() -> str:
    """Random URL-safe token for email verification and password reset links."""
    return secrets.token_urlsafe(32)


# PUBLIC_INTERFACE
def hash_one_time_token(token: str) -> str:
    """Stable digest stored in place of a one-time token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


# PUBLIC_INTERFACE
def generate_temporary_password(length: int = 12) -> str:
    """Readable temporary password (no ambiguous characters)."""
    alphabet = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnpqrstuvwxyz23456789"
    return "".join(secrets.choice(alphabet) for _ in range(length))
