"""Password hashing, JWT session tokens and opaque link tokens."""

import secrets
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError

from procapacity.config import settings

ph = PasswordHasher()

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def hash_password(password: str) -> str:
    return ph.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return ph.verify(hashed_password, plain_password)
    except (VerifyMismatchError, InvalidHashError):
        return False


def generate_url_token() -> str:
    """Opaque 64-character hex token for invite and password reset links."""
    return secrets.token_hex(32)


def _encode(user_id: UUID, token_type: str, lifetime: timedelta, **claims: Any) -> str:
    issued_at = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "type": token_type,
        **claims,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(user_id: UUID, workspace_id: UUID, role: str) -> str:
    """Short-lived token scoped to the user's workspace and role."""
    return _encode(
        user_id,
        ACCESS_TOKEN_TYPE,
        timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        workspace_id=str(workspace_id),
        role=role,
    )


def create_refresh_token(user_id: UUID) -> str:
    # jti keeps tokens issued in the same second distinct
    return _encode(
        user_id,
        REFRESH_TOKEN_TYPE,
        timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        jti=secrets.token_hex(8),
    )


def create_token_pair(user_id: UUID, workspace_id: UUID, role: str) -> tuple[str, str]:
    return create_access_token(user_id, workspace_id, role), create_refresh_token(user_id)


def decode_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT, raising ``ValueError`` on any failure."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise ValueError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise ValueError(f"Invalid token: {e}")


def _verify(token: str, token_type: str) -> dict[str, Any]:
    payload = decode_token(token)
    if payload.get("type") != token_type:
        raise ValueError("Invalid token type")
    return payload


def verify_access_token(token: str) -> dict[str, Any]:
    return _verify(token, ACCESS_TOKEN_TYPE)


def verify_refresh_token(token: str) -> dict[str, Any]:
    return _verify(token, REFRESH_TOKEN_TYPE)
