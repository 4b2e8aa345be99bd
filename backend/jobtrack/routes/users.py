from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from jobtrack.core.database import get_db
from jobtrack.core.password_policy import ensure_strong_password
from jobtrack.core.security import hash_password, verify_password
from jobtrack.dependencies.auth import get_current_user
from jobtrack.models.user import User
from jobtrack.schemas.auth import MessageOut
from jobtrack.schemas.user import ChangePasswordIn, UpdateProfileIn, UserMeOut
from jobtrack.services import sessions, users

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserMeOut)
def get_me(user: User = Depends(get_current_user)) -> User:
    return user


@router.patch("/me", response_model=UserMeOut)
def update_me(
    payload: UpdateProfileIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    data = payload.model_dump(exclude_unset=True)
    users.update_profile(db, user, first_name=data.get("first_name"), last_name=data.get("last_name"))
    db.commit()
    db.refresh(user)
    return user


@router.post("/me/change-password", response_model=MessageOut)
def change_password(
    payload: ChangePasswordIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not verify_password(payload.current_password, user.password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")

    if payload.current_password == payload.new_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="New password must be different from current password",
        )

    ensure_strong_password(payload.new_password, email=user.email, names=(user.first_name, user.last_name))

    # Also revokes every session and reset token (forces re-login everywhere).
    users.change_password(db, user, hash_password(payload.new_password))
    db.commit()

    return {"message": "Password updated. Please log in again."}


@router.delete("/me", response_model=MessageOut)
def delete_me(
    response: Response,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    users.soft_delete_user(db, user.id)
    db.commit()
    sessions.clear_session_cookie(response)
    return {"message": "Account deleted"}
