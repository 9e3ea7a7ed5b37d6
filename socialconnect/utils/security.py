"""
Password hashing and JWT token utilities.
"""
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from socialconnect.config import get_settings

settings = get_settings()

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


def _to_bcrypt_secret(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def get_password_hash(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(_to_bcrypt_secret(password), bcrypt.gensalt()).decode("ascii")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Check a plain password against a stored hash."""
    if not hashed_password or not hashed_password.startswith("$2"):
        return False
    try:
        return bcrypt.checkpw(
            _to_bcrypt_secret(plain_password),
            hashed_password.encode("ascii"),
        )
    except ValueError:
        return False


def _create_token(data: dict[str, Any], token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    to_encode.update({
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
    })
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Create a short-lived access token."""
    return _create_token(
        data,
        "access",
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Create a long-lived refresh token."""
    return _create_token(
        data,
        "refresh",
        expires_delta or timedelta(days=settings.refresh_token_expire_days),
    )


def verify_token(token: str, token_type: str = "access") -> dict[str, Any] | None:
    """
    Decode and validate a JWT.
    
    Returns the payload, or None when the token is invalid, expired
    or of a different type.
    """
    if not token:
        return None
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None
    
    if payload.get("type") != token_type:
        return None
    return payload
