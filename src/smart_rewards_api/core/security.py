"""Password hashing and bearer token helpers."""

from __future__ import annotations

from datetime import timedelta
from typing import Any
from uuid import UUID

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from smart_rewards_api.core.clock import utcnow
from smart_rewards_api.core.settings import settings


class InvalidTokenError(Exception):
    """Raised when a bearer token cannot be decoded or has expired."""


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def create_access_token(user_id: UUID, user_type: str, *, expires_in: timedelta | None = None) -> str:
    issued_at = utcnow()
    lifetime = expires_in or timedelta(hours=settings.jwt_expiry_hours)
    claims: dict[str, Any] = {
        "userId": str(user_id),
        "userType": user_type,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as error:
        raise InvalidTokenError(str(error)) from error
    if "userId" not in claims:
        raise InvalidTokenError("Token missing userId claim")
    return claims
