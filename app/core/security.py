"""Security utilities for session tokens."""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from jose import JWTError, jwt

from app.config import settings

SESSION_TOKEN_TYPE = "session"


def create_session_token(
    user_id: str,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT session token for a signed-in user.

    Args:
        user_id: ID of the user document
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token
    """
    now = datetime.now(UTC)

    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.session_expire_minutes)

    to_encode = {
        "sub": user_id,
        "jti": uuid4().hex,
        "exp": expire,
        "iat": now,
        "type": SESSION_TOKEN_TYPE,
    }

    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_session_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate a JWT session token.

    Args:
        token: JWT token to decode

    Returns:
        Decoded payload or None if invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    if payload.get("type") != SESSION_TOKEN_TYPE:
        return None

    return payload
