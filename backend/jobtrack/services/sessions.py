"""
Session renewal on top of the token ledger.

Login issues a ``session`` token delivered as an HttpOnly cookie. Refresh
consumes it and issues a replacement (rotation), so a replayed cookie fails
with TokenAlreadyUsed.
"""
from __future__ import annotations

from fastapi import Request, Response
from sqlalchemy.orm import Session

from jobtrack.core.config import settings
from jobtrack.core.errors import TokenAlreadyUsed, TokenExpired, TokenNotFound
from jobtrack.models.enums import TokenPurpose
from jobtrack.models.token import Token
from jobtrack.services import tokens


def start_session(db: Session, user_id: int) -> Token:
    return tokens.issue(db, user_id, purpose=TokenPurpose.SESSION)


def rotate_session(db: Session, raw_session_token: str) -> Token:
    """
    Spend the presented session token and issue its successor for the same
    user. Raises the ledger's TokenNotFound / TokenExpired / TokenAlreadyUsed.
    """
    current = tokens.consume(db, raw_session_token, purpose=TokenPurpose.SESSION)
    return start_session(db, current.user_id)


def end_session(db: Session, raw_session_token: str) -> None:
    # Logging out with a stale or unknown cookie is not an error.
    try:
        tokens.consume(db, raw_session_token, purpose=TokenPurpose.SESSION)
    except (TokenNotFound, TokenExpired, TokenAlreadyUsed):
        pass


# -----------------------------
# Cookie helpers
# -----------------------------
def cookie_name() -> str:
    return str(getattr(settings, "SESSION_COOKIE_NAME", "session_token")).strip() or "session_token"


def cookie_path() -> str:
    # Keep the session cookie scoped to auth endpoints by default
    return str(getattr(settings, "SESSION_COOKIE_PATH", "/auth")).strip() or "/auth"


def cookie_secure() -> bool:
    # Prod => HTTPS => Secure cookies. Dev http://localhost => must be False.
    return settings.is_prod


def cookie_samesite() -> str:
    v = str(getattr(settings, "SESSION_COOKIE_SAMESITE", "lax")).lower().strip()
    if v not in {"lax", "strict", "none"}:
        return "lax"
    return v


def cookie_max_age_seconds() -> int:
    return int(settings.SESSION_TOKEN_EXPIRE_HOURS) * 3600


def set_session_cookie(resp: Response, raw_session_token: str) -> None:
    resp.set_cookie(
        key=cookie_name(),
        value=raw_session_token,
        httponly=True,
        secure=cookie_secure(),
        samesite=cookie_samesite(),
        max_age=cookie_max_age_seconds(),
        path=cookie_path(),
    )


def clear_session_cookie(resp: Response) -> None:
    resp.delete_cookie(
        key=cookie_name(),
        path=cookie_path(),
    )


def read_session_cookie(req: Request) -> str | None:
    val = req.cookies.get(cookie_name())
    if not val:
        return None
    val = val.strip()
    return val or None
