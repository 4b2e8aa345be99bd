"""
Token ledger: single-use, expiring tokens bound to a user and a purpose.

A token is valid iff ``used is False and now < expires_at``. Consumption is a
single conditional UPDATE so two concurrent consumers can never both win.
Services here only flush; the caller owns commit/rollback.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import ColumnElement, delete, func, or_, update
from sqlalchemy.orm import Session

from jobtrack.core import clock
from jobtrack.core.config import settings
from jobtrack.core.errors import TokenAlreadyUsed, TokenExpired, TokenNotFound
from jobtrack.core.security import generate_token_value
from jobtrack.models.enums import TokenPurpose
from jobtrack.models.token import Token

logger = logging.getLogger(__name__)


def default_ttl(purpose: TokenPurpose | str) -> timedelta:
    purpose = TokenPurpose(purpose)
    if purpose is TokenPurpose.VERIFY:
        return timedelta(hours=settings.EMAIL_VERIFY_TOKEN_EXPIRE_HOURS)
    if purpose is TokenPurpose.RESET:
        return timedelta(minutes=settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES)
    return timedelta(hours=settings.SESSION_TOKEN_EXPIRE_HOURS)


def is_valid(token: Token, *, now: datetime | None = None) -> bool:
    now = now or clock.utc_now()
    return not token.used and now < clock.as_utc(token.expires_at)


def issue(
    db: Session,
    user_id: int,
    ttl: timedelta | None = None,
    *,
    purpose: TokenPurpose | str,
    replace_existing: bool = False,
) -> Token:
    """
    Create a fresh token for ``user_id``. With ``replace_existing`` every
    outstanding token of the same purpose is invalidated first, so only the
    most recently issued link works.
    """
    purpose = TokenPurpose(purpose)
    ttl = ttl if ttl is not None else default_ttl(purpose)
    if ttl <= timedelta(0):
        raise ValueError("ttl must be positive")

    if replace_existing:
        invalidate_all_for_user(db, user_id, purpose=purpose)

    now = clock.utc_now()
    token = Token(
        user_id=user_id,
        token=generate_token_value(),
        purpose=purpose.value,
        expires_at=now + ttl,
        used=False,
        created_at=now,
        updated_at=now,
    )
    db.add(token)
    db.flush()

    logger.info(
        "Issued token: id=%s user_id=%s purpose=%s expires_at=%s",
        token.id,
        user_id,
        purpose.value,
        token.expires_at.isoformat(),
    )
    return token


def get_token(db: Session, value: str) -> Token | None:
    if not value:
        return None
    return db.query(Token).filter(Token.token == value).first()


def consume(db: Session, value: str, *, purpose: TokenPurpose | str | None = None) -> Token:
    """
    Atomically flip ``used`` on a valid token and return it.

    Raises TokenNotFound for unknown values (or a purpose mismatch),
    TokenExpired once ``expires_at`` has passed, and TokenAlreadyUsed otherwise.
    """
    value = (value or "").strip()
    if not value:
        raise TokenNotFound()

    now = clock.utc_now()
    conditions = [
        Token.token == value,
        Token.used.is_(False),
        Token.expires_at > now,
    ]
    if purpose is not None:
        conditions.append(Token.purpose == TokenPurpose(purpose).value)

    result = db.execute(
        update(Token)
        .where(*conditions)
        .values(used=True, updated_at=now)
        .execution_options(synchronize_session=False)
    )

    token = get_token(db, value)
    if result.rowcount == 1 and token is not None:
        db.refresh(token)
        logger.info("Consumed token: id=%s user_id=%s purpose=%s", token.id, token.user_id, token.purpose)
        return token

    if token is None or (purpose is not None and token.purpose != TokenPurpose(purpose).value):
        logger.warning("Token consume rejected: reason=not_found")
        raise TokenNotFound()

    # Expiry wins over "used": an expired token reports expired either way.
    if clock.as_utc(token.expires_at) <= now:
        logger.warning("Token consume rejected: id=%s reason=expired", token.id)
        raise TokenExpired()

    logger.warning("Token consume rejected: id=%s reason=already_used", token.id)
    raise TokenAlreadyUsed()


def invalidate_all_for_user(
    db: Session,
    user_id: int,
    *,
    purpose: TokenPurpose | str | None = None,
) -> int:
    """
    Mark every outstanding token of a user as used (e.g. after a credential
    change). Returns how many rows were invalidated.
    """
    now = clock.utc_now()
    stmt = (
        update(Token)
        .where(
            Token.user_id == user_id,
            Token.used.is_(False),
            Token.expires_at > now,
        )
        .values(used=True, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if purpose is not None:
        stmt = stmt.where(Token.purpose == TokenPurpose(purpose).value)

    count = db.execute(stmt).rowcount or 0
    if count:
        logger.info(
            "Invalidated tokens: user_id=%s purpose=%s count=%s",
            user_id,
            TokenPurpose(purpose).value if purpose is not None else "all",
            count,
        )
    return count


def _purgeable(cutoff: datetime) -> ColumnElement[bool]:
    # Rows that can never be valid again.
    return or_(Token.expires_at <= cutoff, Token.used.is_(True))


def count_purgeable(db: Session, *, before: datetime | None = None) -> int:
    cutoff = before or clock.utc_now()
    return int(db.query(func.count(Token.id)).filter(_purgeable(cutoff)).scalar() or 0)


def purge_expired(db: Session, *, before: datetime | None = None) -> int:
    """
    Storage hygiene: physically remove tokens that can never be valid again
    (expired before ``before``, or already used). Correctness never depends
    on this running.
    """
    cutoff = before or clock.utc_now()
    result = db.execute(
        delete(Token)
        .where(_purgeable(cutoff))
        .execution_options(synchronize_session=False)
    )
    count = result.rowcount or 0
    logger.info("Purged tokens: cutoff=%s count=%s", cutoff.isoformat(), count)
    return count
