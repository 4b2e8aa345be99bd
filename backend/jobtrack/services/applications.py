from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import desc, func, or_, select
from sqlalchemy.orm import Session

from jobtrack.core import clock
from jobtrack.core.errors import ApplicationNotFound, Forbidden
from jobtrack.models.application import Application
from jobtrack.models.application_status import ApplicationStatus
from jobtrack.models.enums import ApplicationType, StatusType
from jobtrack.models.user import User
from jobtrack.services import statuses

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
UPDATABLE_FIELDS = ("company", "position", "website", "application_type")


@dataclass
class ApplicationView:
    application: Application
    current_status: Optional[ApplicationStatus]


@dataclass
class ApplicationFilters:
    search: str | None = None
    status: StatusType | str | None = None
    application_type: ApplicationType | str | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    limit: int = 50
    offset: int = 0


def _clean_required(value: str | None, *, field_name: str, max_length: int) -> str:
    clean = (value or "").strip()
    if not clean:
        raise ValueError(f"{field_name} cannot be empty")
    return clean[:max_length]


def _clean_optional(value: str | None, *, max_length: int) -> str | None:
    if value is None:
        return None
    clean = str(value).strip()
    return clean[:max_length] or None


def create_application(
    db: Session,
    user: User,
    *,
    company: str,
    position: str,
    website: str | None = None,
    application_type: ApplicationType | str,
) -> ApplicationView:
    """
    Insert the application together with its initial ``Applied`` status.
    Both rows share one ``created_at`` and one flush, so an application never
    exists without history.
    """
    app_type = ApplicationType(application_type)
    now = clock.utc_now()

    application = Application(
        company=_clean_required(company, field_name="company", max_length=70),
        position=_clean_required(position, field_name="position", max_length=100),
        website=_clean_optional(website, max_length=255),
        application_type=app_type.value,
        created_by=user.id,
        created_at=now,
        updated_at=now,
        deleted=False,
        deleted_at=None,
    )
    db.add(application)
    db.flush()

    initial = statuses.build_status(
        application_id=application.id,
        created_by=user.id,
        status_type=StatusType.APPLIED,
        created_at=now,
    )
    db.add(initial)
    db.flush()

    logger.info(
        "Created application: id=%s user_id=%s company=%s position=%s",
        application.id,
        user.id,
        application.company,
        application.position,
    )
    return ApplicationView(application=application, current_status=initial)


def get_application(db: Session, application_id: int, *, include_deleted: bool = False) -> Optional[Application]:
    qry = db.query(Application).filter(Application.id == application_id)
    if not include_deleted:
        qry = qry.filter(Application.deleted.is_(False))
    return qry.first()


def get_application_for_user(db: Session, application_id: int, user: User) -> Application:
    """
    Live application visible to ``user`` (owner, or any application for admins).
    Other users' applications are reported as missing.
    """
    application = get_application(db, application_id)
    if application is None:
        raise ApplicationNotFound()
    if application.created_by != user.id and not user.is_admin:
        raise ApplicationNotFound()
    return application


def _get_for_mutation(db: Session, application_id: int, acting_user: User) -> Application:
    application = get_application(db, application_id)
    if application is None:
        raise ApplicationNotFound()
    if application.created_by != acting_user.id and not acting_user.is_admin:
        logger.warning(
            "Application mutation forbidden: application_id=%s user_id=%s",
            application_id,
            acting_user.id,
        )
        raise Forbidden()
    return application


def view(db: Session, application: Application) -> ApplicationView:
    return ApplicationView(
        application=application,
        current_status=statuses.current_status(db, application.id),
    )


def update_application(db: Session, application_id: int, acting_user: User, **changes) -> ApplicationView:
    application = _get_for_mutation(db, application_id, acting_user)

    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Unsupported fields: {', '.join(sorted(unknown))}")

    if "company" in changes and changes["company"] is not None:
        application.company = _clean_required(changes["company"], field_name="company", max_length=70)
    if "position" in changes and changes["position"] is not None:
        application.position = _clean_required(changes["position"], field_name="position", max_length=100)
    if "website" in changes:
        application.website = _clean_optional(changes["website"], max_length=255)
    if "application_type" in changes and changes["application_type"] is not None:
        application.application_type = ApplicationType(changes["application_type"]).value

    application.updated_at = clock.utc_now()
    db.flush()

    logger.info("Updated application: id=%s fields=%s", application.id, sorted(changes))
    return view(db, application)


def soft_delete_application(db: Session, application_id: int, acting_user: User) -> Application:
    """
    Hide the application from listings. Status rows are kept untouched.

    Raises:
        ApplicationNotFound: missing or already deleted
        Forbidden: acting user is neither the creator nor an admin
    """
    application = _get_for_mutation(db, application_id, acting_user)

    now = clock.utc_now()
    application.deleted = True
    application.deleted_at = now
    application.updated_at = now
    db.flush()

    logger.info("Soft-deleted application: id=%s user_id=%s", application.id, acting_user.id)
    return application


def _latest_status_subquery():
    ranked = select(
        ApplicationStatus.id.label("status_id"),
        ApplicationStatus.application_id.label("application_id"),
        ApplicationStatus.status_type.label("status_type"),
        func.row_number()
        .over(
            partition_by=ApplicationStatus.application_id,
            order_by=(desc(ApplicationStatus.created_at), desc(ApplicationStatus.id)),
        )
        .label("rn"),
    ).subquery()
    return select(ranked.c.application_id, ranked.c.status_id, ranked.c.status_type).where(ranked.c.rn == 1).subquery()


def list_applications(
    db: Session,
    user_id: int,
    filters: ApplicationFilters | None = None,
) -> list[ApplicationView]:
    """
    Live applications owned by ``user_id`` with their derived current status,
    newest first.
    """
    filters = filters or ApplicationFilters()
    latest = _latest_status_subquery()

    qry = (
        db.query(Application, ApplicationStatus)
        .outerjoin(latest, latest.c.application_id == Application.id)
        .outerjoin(ApplicationStatus, ApplicationStatus.id == latest.c.status_id)
        .filter(Application.created_by == user_id, Application.deleted.is_(False))
    )

    if filters.search:
        term = str(filters.search).strip()
        if term:
            like = f"%{term}%"
            qry = qry.filter(
                or_(
                    Application.company.ilike(like),
                    Application.position.ilike(like),
                    Application.website.ilike(like),
                )
            )

    if filters.status:
        qry = qry.filter(latest.c.status_type == StatusType(filters.status).value)

    if filters.application_type:
        qry = qry.filter(Application.application_type == ApplicationType(filters.application_type).value)

    if filters.created_from is not None:
        qry = qry.filter(Application.created_at >= clock.as_utc(filters.created_from))

    if filters.created_to is not None:
        qry = qry.filter(Application.created_at <= clock.as_utc(filters.created_to))

    limit = max(1, min(int(filters.limit or 50), MAX_PAGE_SIZE))
    offset = max(0, int(filters.offset or 0))

    rows = (
        qry.order_by(desc(Application.created_at), desc(Application.id))
        .offset(offset)
        .limit(limit)
        .all()
    )
    return [ApplicationView(application=app, current_status=status) for app, status in rows]
