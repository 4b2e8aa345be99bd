# jobtrack/core/security.py
"""
Credential hashing (passlib/argon2), opaque ledger token values, and the
short-lived access JWT (python-jose) sent as ``Authorization: Bearer``.
"""
from __future__ import annotations

import secrets
from datetime import timedelta
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from jobtrack.core import clock
from jobtrack.core.config import settings

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

ACCESS_PURPOSE = "access"
MIN_TOKEN_BYTES = 16


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        # Unknown or malformed stored hash
        return False


def generate_token_value() -> str:
    """URL-safe random value; the ledger row, not the value, decides validity."""
    return secrets.token_urlsafe(max(int(settings.TOKEN_BYTES or 0), MIN_TOKEN_BYTES))


def _signing_key() -> str:
    key = (settings.JWT_SECRET or "").strip()
    if not key:
        raise RuntimeError("JWT_SECRET must be set (auth is required).")
    return key


def create_access_token(user_id: int, role: str) -> str:
    issued = clock.utc_now()
    claims = {
        "sub": str(user_id),
        "role": role,
        "purpose": ACCESS_PURPOSE,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)).timestamp()),
    }
    return jwt.encode(claims, _signing_key(), algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Raises ValueError for bad signature, expiry or a non-access token."""
    try:
        claims = jwt.decode(token, _signing_key(), algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise ValueError("Invalid or expired token") from e

    if claims.get("purpose") != ACCESS_PURPOSE:
        raise ValueError("Invalid token purpose")
    return claims
