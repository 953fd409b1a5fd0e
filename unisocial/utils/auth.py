"""
Authentication Utilities

This module provides authentication and authorization utilities
including password hashing, JWT token handling and the current-user
dependency.
"""

from datetime import datetime, timedelta
from typing import Optional

import jwt
import structlog
from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from unisocial.config.database import get_db
from unisocial.config.settings import get_settings
from unisocial.models.tables import UserRow
from unisocial.utils.error_handling import AuthenticationError
from unisocial.utils.logger import log_security_event

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=get_settings().bcrypt_rounds,
)

# Browser redirects (OAuth connect) carry the token in the query string instead
security = HTTPBearer(auto_error=False)

logger = structlog.get_logger(__name__)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Data to encode in the token
        expires_delta: Token expiration time

    Returns:
        Encoded JWT token
    """
    settings = get_settings()

    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({"exp": expire})

    return jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.algorithm
    )


def issue_user_token(user: UserRow) -> str:
    return create_access_token({"sub": str(user.id)})


def verify_token(token: str) -> Optional[dict]:
    """
    Verify and decode a JWT token.

    Args:
        token: JWT token to verify

    Returns:
        Decoded token payload or None if invalid
    """
    settings = get_settings()

    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm]
        )
    except jwt.PyJWTError as e:
        logger.warning("Token verification failed", error=str(e))
        return None


def create_oauth_state(provider: str) -> str:
    """Short-lived signed state parameter for an OAuth round trip."""
    return create_access_token(
        {"provider": provider, "type": "oauth_state"},
        expires_delta=timedelta(minutes=10),
    )


def verify_oauth_state(state: Optional[str], provider: str) -> bool:
    if not state:
        return False
    payload = verify_token(state)
    return bool(
        payload
        and payload.get("type") == "oauth_state"
        and payload.get("provider") == provider
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    token: Optional[str] = Query(None, include_in_schema=False),
    db: AsyncSession = Depends(get_db),
) -> UserRow:
    """
    Get current authenticated user from a Bearer header or ``?token=``.

    Raises:
        AuthenticationError: If the token is missing, invalid or the user is gone
    """
    raw_token = credentials.credentials if credentials else token
    if not raw_token:
        raise AuthenticationError()

    payload = verify_token(raw_token)
    if payload is None or payload.get("type") == "oauth_state":
        log_security_event("invalid_token", severity="warning")
        raise AuthenticationError()

    user_id = payload.get("sub")
    if user_id is None:
        raise AuthenticationError()

    try:
        user = await db.get(UserRow, int(user_id))
    except (TypeError, ValueError):
        raise AuthenticationError()

    if user is None:
        raise AuthenticationError()

    return user
