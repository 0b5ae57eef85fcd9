"""Password hashing and staff access tokens."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
from jose import JWTError, jwt

from backoffice.core.config import get_settings


@dataclass(frozen=True)
class AccessClaims:
    """Identity carried by a staff bearer token."""

    user_id: uuid.UUID
    account_id: uuid.UUID
    role: str


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode(), hashed_password.encode())
    except (ValueError, TypeError):
        return False


def token_lifetime() -> timedelta:
    return timedelta(minutes=get_settings().access_token_expire_minutes)


def issue_access_token(
    *,
    user_id: uuid.UUID,
    account_id: uuid.UUID,
    role: str,
    expires_in: timedelta | None = None,
) -> str:
    """Sign a token scoping the bearer to one agency account."""
    settings = get_settings()
    expire = datetime.now(UTC) + (expires_in or token_lifetime())
    claims: dict[str, Any] = {
        "sub": str(user_id),
        "account_id": str(account_id),
        "role": role,
        "exp": expire,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def read_access_token(token: str) -> AccessClaims:
    """Verify ``token`` and return its claims.

    Raises ``JWTError`` for bad signatures, expired tokens and tokens whose
    subject or account is not a UUID.
    """
    settings = get_settings()
    payload = jwt.decode(
        token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
    )
    try:
        return AccessClaims(
            user_id=uuid.UUID(payload["sub"]),
            account_id=uuid.UUID(payload["account_id"]),
            role=str(payload.get("role", "")),
        )
    except (KeyError, ValueError, TypeError) as exc:
        raise JWTError("Malformed token claims") from exc
