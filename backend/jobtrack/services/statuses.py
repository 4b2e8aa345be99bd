"""
Status history for applications.

The timeline is append-only: every transition is a new ApplicationStatus row
and the "current" status is always derived at read time as the row with the
greatest (created_at, id). There is no transition table; any stage may follow
any other.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from jobtrack.core import clock
from jobtrack.core.errors import ApplicationNotFound, Forbidden, InvalidStatusDetails
from jobtrack.models.application import Application
from jobtrack.models.application_status import ApplicationStatus
from jobtrack.models.enums import InterviewType, StatusType, TestType
from jobtrack.models.user import User

logger = logging.getLogger(__name__)


def validate_status_details(
    status_type: StatusType | str,
    test_type: TestType | str | None = None,
    interview_type: InterviewType | str | None = None,
) -> tuple[StatusType, TestType | None, InterviewType | None]:
    """
    Coerce the enum values and enforce which sub-fields a stage may carry:
    test_type only on Test rows, interview_type only on Interview rows.
    """
    try:
        status = StatusType(status_type)
        test = TestType(test_type) if test_type is not None else None
        interview = InterviewType(interview_type) if interview_type is not None else None
    except ValueError as e:
        raise InvalidStatusDetails(str(e))

    if test is not None and status is not StatusType.TEST:
        raise InvalidStatusDetails(
            f"test_type is only allowed with status_type {StatusType.TEST.value}",
            details={"field": "test_type", "status_type": status.value},
        )
    if interview is not None and status is not StatusType.INTERVIEW:
        raise InvalidStatusDetails(
            f"interview_type is only allowed with status_type {StatusType.INTERVIEW.value}",
            details={"field": "interview_type", "status_type": status.value},
        )
    return status, test, interview


def _clean_notes(notes: str | None) -> str | None:
    if notes is None:
        return None
    clean = str(notes).strip()
    return clean or None


def build_status(
    *,
    application_id: int,
    created_by: int,
    status_type: StatusType | str,
    test_type: TestType | str | None = None,
    interview_type: InterviewType | str | None = None,
    notes: str | None = None,
    created_at: datetime | None = None,
) -> ApplicationStatus:
    status, test, interview = validate_status_details(status_type, test_type, interview_type)
    return ApplicationStatus(
        application_id=application_id,
        created_by=created_by,
        status_type=status.value,
        test_type=test.value if test else None,
        interview_type=interview.value if interview else None,
        notes=_clean_notes(notes),
        created_at=created_at or clock.utc_now(),
    )


def append_status(
    db: Session,
    application_id: int,
    acting_user: User,
    *,
    status_type: StatusType | str,
    test_type: TestType | str | None = None,
    interview_type: InterviewType | str | None = None,
    notes: str | None = None,
) -> ApplicationStatus:
    """
    Record a new stage for a live application.

    Raises:
        ApplicationNotFound: application missing or soft-deleted
        Forbidden: acting user neither owns the application nor is an admin
        InvalidStatusDetails: sub-fields do not fit the status type
    """
    application = (
        db.query(Application)
        .filter(Application.id == application_id, Application.deleted.is_(False))
        .first()
    )
    if application is None:
        raise ApplicationNotFound()
    if application.created_by != acting_user.id and not acting_user.is_admin:
        raise Forbidden()

    now = clock.utc_now()
    row = build_status(
        application_id=application.id,
        created_by=acting_user.id,
        status_type=status_type,
        test_type=test_type,
        interview_type=interview_type,
        notes=notes,
        created_at=now,
    )
    db.add(row)
    application.updated_at = now
    db.flush()

    logger.info(
        "Appended status: application_id=%s status_id=%s status=%s user_id=%s",
        application.id,
        row.id,
        row.status_type,
        acting_user.id,
    )
    return row


def current_status(db: Session, application_id: int) -> Optional[ApplicationStatus]:
    return (
        db.query(ApplicationStatus)
        .filter(ApplicationStatus.application_id == application_id)
        .order_by(desc(ApplicationStatus.created_at), desc(ApplicationStatus.id))
        .first()
    )


def history(db: Session, application_id: int) -> list[ApplicationStatus]:
    """Full timeline, oldest first. Pure read; includes soft-deleted parents."""
    return (
        db.query(ApplicationStatus)
        .filter(ApplicationStatus.application_id == application_id)
        .order_by(ApplicationStatus.created_at.asc(), ApplicationStatus.id.asc())
        .all()
    )
