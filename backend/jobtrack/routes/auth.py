# jobtrack/routes/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from jobtrack.core.database import get_db
from jobtrack.core.errors import DomainError, UserNotFound, WrongCredential
from jobtrack.core.password_policy import ensure_strong_password
from jobtrack.core.security import create_access_token, hash_password, verify_password
from jobtrack.models.enums import TokenPurpose
from jobtrack.schemas.auth import (
    EmailIn,
    LoginIn,
    MessageOut,
    RegisterIn,
    ResetPasswordIn,
    TokenOut,
)
from jobtrack.services import sessions, tokens, users
from jobtrack.services.email import (
    EmailDeliveryError,
    EmailNotConfiguredError,
    send_password_reset_email,
    send_verification_email,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

GENERIC_EMAIL_SENT = "If that email exists, a message was sent."


def _deliver(sender, email: str, token_value: str) -> None:
    try:
        sender(email, token_value)
    except EmailNotConfiguredError as e:
        raise HTTPException(status_code=500, detail=f"Email delivery not configured: {e}")
    except EmailDeliveryError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/register", response_model=MessageOut)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    ensure_strong_password(payload.password, email=payload.email, names=(payload.first_name, payload.last_name))

    try:
        user = users.create_user(
            db,
            email=payload.email,
            first_name=payload.first_name,
            last_name=payload.last_name,
            password_hash=hash_password(payload.password),
        )
        token = tokens.issue(db, user.id, purpose=TokenPurpose.VERIFY, replace_existing=True)
        _deliver(send_verification_email, user.email, token.token)
        db.commit()
    except Exception:
        db.rollback()
        raise

    return {"message": "Registration successful. Please verify your email."}


@router.get("/verify", response_model=MessageOut)
def verify_email(token: str, db: Session = Depends(get_db)):
    try:
        record = tokens.consume(db, token, purpose=TokenPurpose.VERIFY)
        user = users.get_user(db, record.user_id)
        if user is None:
            raise UserNotFound()
        changed = users.mark_verified(db, user)
        db.commit()
    except Exception:
        db.rollback()
        raise

    if not changed:
        return {"message": "Email already verified"}
    return {"message": "Email verified successfully. You can now log in."}


@router.post("/resend-verification", response_model=MessageOut)
def resend_verification(payload: EmailIn, db: Session = Depends(get_db)):
    user = users.get_user_by_email(db, payload.email)
    if not user:
        return {"message": GENERIC_EMAIL_SENT}

    if user.is_verified:
        return {"message": "Email already verified. Please log in."}

    try:
        token = tokens.issue(db, user.id, purpose=TokenPurpose.VERIFY, replace_existing=True)
        _deliver(send_verification_email, user.email, token.token)
        db.commit()
    except Exception:
        db.rollback()
        raise

    return {"message": GENERIC_EMAIL_SENT}


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    try:
        user = users.authenticate(db, email=payload.email, password=payload.password, verify=verify_password)
    except (UserNotFound, WrongCredential):
        # Persist the failed-login counter, but never reveal which part was wrong.
        db.commit()
        raise HTTPException(status_code=401, detail="Invalid email or password")
    except DomainError:
        db.commit()
        raise

    if not user.is_verified:
        db.commit()
        raise HTTPException(status_code=403, detail="Email not verified")

    session = sessions.start_session(db, user.id)
    db.commit()
    sessions.set_session_cookie(response, session.token)

    return {
        "access_token": create_access_token(user.id, user.role),
        "token_type": "bearer",
    }


@router.post("/refresh", response_model=TokenOut)
def refresh(request: Request, response: Response, db: Session = Depends(get_db)):
    """
    Rotate the session cookie:
      - read session token from cookie
      - consume it (single use)
      - issue a successor cookie
      - return a new access token
    """
    raw = sessions.read_session_cookie(request)
    if not raw:
        raise HTTPException(status_code=401, detail="Missing session token")

    try:
        successor = sessions.rotate_session(db, raw)
    except DomainError:
        db.rollback()
        raise HTTPException(status_code=401, detail="Invalid or expired session token")

    user = users.get_user(db, successor.user_id)
    if not user:
        db.rollback()
        raise HTTPException(status_code=401, detail="Invalid user")

    db.commit()
    sessions.set_session_cookie(response, successor.token)

    return {
        "access_token": create_access_token(user.id, user.role),
        "token_type": "bearer",
    }


@router.post("/logout", response_model=MessageOut)
def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    raw = sessions.read_session_cookie(request)
    if raw:
        sessions.end_session(db, raw)
        db.commit()

    sessions.clear_session_cookie(response)
    return {"message": "Logged out"}


@router.post("/forgot-password", response_model=MessageOut)
def forgot_password(payload: EmailIn, db: Session = Depends(get_db)):
    user = users.get_user_by_email(db, payload.email)
    if not user:
        return {"message": GENERIC_EMAIL_SENT}

    try:
        token = tokens.issue(db, user.id, purpose=TokenPurpose.RESET, replace_existing=True)
        _deliver(send_password_reset_email, user.email, token.token)
        db.commit()
    except Exception:
        db.rollback()
        raise

    return {"message": GENERIC_EMAIL_SENT}


@router.post("/reset-password", response_model=MessageOut)
def reset_password(payload: ResetPasswordIn, db: Session = Depends(get_db)):
    try:
        record = tokens.consume(db, payload.token, purpose=TokenPurpose.RESET)
        user = users.get_user(db, record.user_id)
        if user is None:
            raise UserNotFound()
        ensure_strong_password(payload.new_password, email=user.email, names=(user.first_name, user.last_name))
        users.change_password(db, user, hash_password(payload.new_password))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Password reset completed: user_id=%s", user.id)
    return {"message": "Password updated. Please log in again."}
