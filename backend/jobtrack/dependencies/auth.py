# jobtrack/dependencies/auth.py
from __future__ import annotations

from typing import NoReturn

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from jobtrack.core.database import get_db
from jobtrack.core.security import decode_access_token
from jobtrack.models.user import User
from jobtrack.services.users import get_user

bearer = HTTPBearer(auto_error=False)


def _reject(detail: str) -> NoReturn:
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_id_from_access_token(raw: str) -> int:
    try:
        claims = decode_access_token(raw)
    except ValueError:
        _reject("Invalid or expired token")

    sub = claims.get("sub")
    if not isinstance(sub, str) or not sub.isdigit():
        _reject("Invalid or expired token")
    return int(sub)


def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the live (non-deleted) user behind ``Authorization: Bearer <jwt>``.
    Soft-deleted accounts lose API access immediately, even with an unexpired token.
    """
    if creds is None:
        _reject("Missing Authorization header")

    user = get_user(db, _user_id_from_access_token(creds.credentials))
    if user is None:
        _reject("User not found")
    return user
