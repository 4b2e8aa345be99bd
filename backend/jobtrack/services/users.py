# jobtrack/services/users.py
"""
User account store.

Responsibilities:
- Creating accounts with normalized, validated, unique (among live users) emails
- Authenticating credentials and maintaining the failed-login counter
- Soft deletion, verification and credential changes

Password hashing stays outside this module: callers pass an already hashed
secret and a verifier callable, so the store only keeps opaque strings.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from jobtrack.core import clock
from jobtrack.core.config import settings
from jobtrack.core.errors import (
    AccountDeleted,
    AccountLocked,
    DuplicateEmail,
    InvalidEmailFormat,
    UserNotFound,
    WrongCredential,
)
from jobtrack.models.enums import Role
from jobtrack.models.user import User
from jobtrack.services import tokens

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[A-Za-z0-9._%-]+@[A-Za-z0-9.-]+[.][A-Za-z]+$")


@dataclass(frozen=True)
class LockoutPolicy:
    """
    Decides whether an account is locked from its failed-login counter.

    ``max_failed_attempts == 0`` disables locking. With ``lockout_minutes == 0``
    a locked account stays locked until the counter is reset (password reset);
    otherwise the lock lapses that many minutes after the last failure, which is
    the last ``updated_at`` stamp written by the failure increment.
    """

    max_failed_attempts: int = 5
    lockout_minutes: int = 15

    @classmethod
    def from_settings(cls) -> "LockoutPolicy":
        return cls(
            max_failed_attempts=max(int(settings.LOGIN_MAX_FAILED_ATTEMPTS or 0), 0),
            lockout_minutes=max(int(settings.LOGIN_LOCKOUT_MINUTES or 0), 0),
        )

    def is_locked(self, user: User, *, now: datetime | None = None) -> bool:
        if self.max_failed_attempts <= 0:
            return False
        if int(user.failed_login_attempts or 0) < self.max_failed_attempts:
            return False
        if self.lockout_minutes <= 0:
            return True
        now = now or clock.utc_now()
        last_failure = clock.as_utc(user.updated_at) or now
        return now < last_failure + timedelta(minutes=self.lockout_minutes)


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def validate_email(email: str) -> str:
    normalized = normalize_email(email)
    if not normalized or len(normalized) > 255 or not EMAIL_RE.match(normalized):
        raise InvalidEmailFormat()
    return normalized


def normalize_name(name: str | None, *, field: str) -> str:
    clean = (name or "").strip()
    if not clean:
        raise ValueError(f"{field} is required")
    return clean[:100]


def get_user(db: Session, user_id: int, *, include_deleted: bool = False) -> Optional[User]:
    qry = db.query(User).filter(User.id == user_id)
    if not include_deleted:
        qry = qry.filter(User.deleted.is_(False))
    return qry.first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Look up the live (non-deleted) user for an email address."""
    return (
        db.query(User)
        .filter(User.email == normalize_email(email), User.deleted.is_(False))
        .first()
    )


def email_in_use(db: Session, email: str) -> bool:
    return get_user_by_email(db, email) is not None


def create_user(
    db: Session,
    *,
    email: str,
    first_name: str,
    last_name: str,
    password_hash: str,
    role: Role | str = Role.USER,
) -> User:
    """
    Create a new, unverified account.

    Raises:
        InvalidEmailFormat: email fails the strict pattern
        DuplicateEmail: a live account already owns the email
    """
    normalized_email = validate_email(email)
    if not password_hash:
        raise ValueError("password_hash is required")

    if email_in_use(db, normalized_email):
        logger.warning("Registration rejected: duplicate email=%s", normalized_email)
        raise DuplicateEmail()

    now = clock.utc_now()
    user = User(
        email=normalized_email,
        first_name=normalize_name(first_name, field="first_name"),
        last_name=normalize_name(last_name, field="last_name"),
        password=password_hash,
        role=Role(role).value,
        is_verified=False,
        deleted=False,
        deleted_at=None,
        failed_login_attempts=0,
        created_at=now,
        updated_at=now,
    )
    try:
        # Savepoint: losing the insert must not discard the caller's flushed work.
        with db.begin_nested():
            db.add(user)
            db.flush()
    except IntegrityError:
        # Lost a race against a concurrent registration for the same email.
        logger.warning("Registration rejected by unique index: email=%s", normalized_email)
        raise DuplicateEmail()

    logger.info("Created user: id=%s email=%s role=%s", user.id, normalized_email, user.role)
    return user


def authenticate(
    db: Session,
    *,
    email: str,
    password: str,
    verify: Callable[[str, str], bool],
    policy: LockoutPolicy | None = None,
) -> User:
    """
    Check credentials and maintain the failed-login counter.

    ``verify(password, stored_hash)`` is the credential-hashing collaborator.

    Raises:
        UserNotFound, AccountDeleted, AccountLocked, WrongCredential
    """
    policy = policy or LockoutPolicy.from_settings()
    normalized_email = normalize_email(email)

    user = get_user_by_email(db, normalized_email)
    if user is None:
        deleted = (
            db.query(User.id)
            .filter(User.email == normalized_email, User.deleted.is_(True))
            .first()
        )
        if deleted is not None:
            logger.warning("Login rejected: email=%s reason=deleted", normalized_email)
            raise AccountDeleted()
        logger.warning("Login rejected: email=%s reason=not_found", normalized_email)
        raise UserNotFound()

    now = clock.utc_now()
    if policy.is_locked(user, now=now):
        logger.warning("Login rejected: user_id=%s reason=locked", user.id)
        raise AccountLocked()

    if not verify(password, user.password):
        record_failed_login(db, user, now=now)
        logger.warning(
            "Login rejected: user_id=%s reason=wrong_credential attempts=%s",
            user.id,
            user.failed_login_attempts,
        )
        raise WrongCredential()

    user.failed_login_attempts = 0
    user.last_login_at = now
    user.updated_at = now
    db.flush()

    logger.info("User authenticated: id=%s", user.id)
    return user


def record_failed_login(db: Session, user: User, *, now: datetime | None = None) -> int:
    """
    Atomic in-database increment so concurrent failures are never lost.
    Returns the new counter value.
    """
    now = now or clock.utc_now()
    db.execute(
        update(User)
        .where(User.id == user.id)
        .values(
            failed_login_attempts=User.failed_login_attempts + 1,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    db.refresh(user)
    return int(user.failed_login_attempts or 0)


def mark_verified(db: Session, user: User) -> bool:
    """Returns False when the user was already verified (no-op)."""
    if user.is_verified:
        return False
    user.is_verified = True
    user.updated_at = clock.utc_now()
    db.flush()
    logger.info("User verified: id=%s", user.id)
    return True


def change_password(db: Session, user: User, password_hash: str) -> None:
    """
    Store a new credential hash, clear the lockout counter and invalidate all
    outstanding tokens (sessions, reset links) for the user.
    """
    if not password_hash:
        raise ValueError("password_hash is required")
    user.password = password_hash
    user.failed_login_attempts = 0
    user.updated_at = clock.utc_now()
    db.flush()
    tokens.invalidate_all_for_user(db, user.id)
    logger.info("Password changed: user_id=%s", user.id)


def update_profile(
    db: Session,
    user: User,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
) -> User:
    changed = False
    if first_name is not None:
        user.first_name = normalize_name(first_name, field="first_name")
        changed = True
    if last_name is not None:
        user.last_name = normalize_name(last_name, field="last_name")
        changed = True
    if changed:
        user.updated_at = clock.utc_now()
        db.flush()
    return user


def soft_delete_user(db: Session, user_id: int) -> User:
    """
    Flag the user deleted. Idempotent: deleting an already deleted user is a
    no-op. Applications and statuses stay in place for history; outstanding
    tokens are invalidated.
    """
    user = get_user(db, user_id, include_deleted=True)
    if user is None:
        raise UserNotFound()
    if user.deleted:
        return user

    now = clock.utc_now()
    user.deleted = True
    user.deleted_at = now
    user.updated_at = now
    db.flush()
    tokens.invalidate_all_for_user(db, user.id)

    logger.info("Soft-deleted user: id=%s", user.id)
    return user
