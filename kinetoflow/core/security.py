"""Password hashing, bearer tokens and invitation tokens."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import jwt
from passlib.context import CryptContext

from kinetoflow.core.config import settings

JWT_ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def placeholder_password_hash() -> str:
    """Hash a random secret so an invited account cannot be logged into."""

    return hash_password(secrets.token_urlsafe(32))


def generate_invitation_token() -> str:
    """Generate a URL-safe random invitation token (32 bytes of entropy)."""

    return secrets.token_urlsafe(32)


def create_access_token(
    *,
    email: str,
    user_id: UUID,
    role: str,
    tenant_id: UUID | None,
) -> str:
    """Create a signed bearer token for an authenticated user."""

    issued_at = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": email,
        "user_id": str(user_id),
        "role": role,
        "iss": settings.jwt_issuer,
        "iat": issued_at,
        "exp": issued_at + timedelta(milliseconds=settings.jwt_ttl_ms),
    }
    if tenant_id is not None:
        payload["tenant_id"] = str(tenant_id)
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and verify a bearer token.

    Raises:
        jwt.InvalidTokenError: if the signature, expiry or issuer is invalid.
    """

    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[JWT_ALGORITHM],
        issuer=settings.jwt_issuer,
        options={"require": ["exp", "iat", "sub"]},
    )
