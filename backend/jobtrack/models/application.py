from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from jobtrack.core.base import Base


class Application(Base):
    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, index=True)

    company = Column(String(70), nullable=False, index=True)
    position = Column(String(100), nullable=False, index=True)
    website = Column(String(255), nullable=True)

    # Direct | Email | Website | Referral | Recruiter
    application_type = Column(String(30), nullable=False)

    # ownership
    created_by = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    deleted = Column(Boolean, nullable=False, default=False, server_default="false", index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="applications")

    # Append-only timeline; current status is derived from it at read time.
    statuses = relationship(
        "ApplicationStatus",
        back_populates="application",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="(ApplicationStatus.created_at, ApplicationStatus.id)",
    )
