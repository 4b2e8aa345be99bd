from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from jobtrack.core.database import get_db
from jobtrack.dependencies.auth import get_current_user
from jobtrack.models.enums import ApplicationType, StatusType
from jobtrack.models.user import User
from jobtrack.schemas.application import (
    ApplicationCreate,
    ApplicationDetailOut,
    ApplicationOut,
    ApplicationStatusCreate,
    ApplicationStatusOut,
    ApplicationUpdate,
)
from jobtrack.schemas.auth import MessageOut
from jobtrack.services import applications, statuses
from jobtrack.services.applications import ApplicationFilters, ApplicationView

router = APIRouter(prefix="/applications", tags=["applications"], dependencies=[Depends(get_current_user)])


def _to_out(item: ApplicationView) -> ApplicationOut:
    current = ApplicationStatusOut.model_validate(item.current_status) if item.current_status else None
    return ApplicationOut.model_validate(item.application).model_copy(update={"current_status": current})


@router.post("/", response_model=ApplicationOut)
def create_application(
    payload: ApplicationCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        item = applications.create_application(
            db,
            user,
            company=payload.company,
            position=payload.position,
            website=payload.website,
            application_type=payload.application_type,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    return _to_out(item)


@router.get("/", response_model=list[ApplicationOut])
def list_applications(
    search: Optional[str] = None,
    status: Optional[StatusType] = None,
    application_type: Optional[ApplicationType] = None,
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
    limit: int = Query(default=50, ge=1, le=applications.MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    filters = ApplicationFilters(
        search=search,
        status=status,
        application_type=application_type,
        created_from=created_from,
        created_to=created_to,
        limit=limit,
        offset=offset,
    )
    return [_to_out(item) for item in applications.list_applications(db, user.id, filters)]


@router.get("/{application_id}", response_model=ApplicationDetailOut)
def get_application(
    application_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    application = applications.get_application_for_user(db, application_id, user)
    timeline = statuses.history(db, application.id)

    base = _to_out(ApplicationView(application=application, current_status=timeline[-1] if timeline else None))
    return ApplicationDetailOut(
        **base.model_dump(),
        history=[ApplicationStatusOut.model_validate(s) for s in timeline],
    )


@router.patch("/{application_id}", response_model=ApplicationOut)
def update_application(
    application_id: int,
    payload: ApplicationUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    data = payload.model_dump(exclude_unset=True)
    try:
        item = applications.update_application(db, application_id, user, **data)
        db.commit()
    except Exception:
        db.rollback()
        raise

    return _to_out(item)


@router.delete("/{application_id}", response_model=MessageOut)
def delete_application(
    application_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        applications.soft_delete_application(db, application_id, user)
        db.commit()
    except Exception:
        db.rollback()
        raise

    return {"message": "Application deleted"}


@router.post("/{application_id}/statuses", response_model=ApplicationStatusOut)
def append_status(
    application_id: int,
    payload: ApplicationStatusCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        row = statuses.append_status(
            db,
            application_id,
            user,
            status_type=payload.status_type,
            test_type=payload.test_type,
            interview_type=payload.interview_type,
            notes=payload.notes,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    return row


@router.get("/{application_id}/statuses", response_model=list[ApplicationStatusOut])
def list_statuses(
    application_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    application = applications.get_application_for_user(db, application_id, user)
    return statuses.history(db, application.id)
