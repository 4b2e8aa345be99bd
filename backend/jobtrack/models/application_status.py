from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from jobtrack.core.base import Base


class ApplicationStatus(Base):
    __tablename__ = "application_statuses"

    id = Column(Integer, primary_key=True, index=True)

    application_id = Column(
        Integer,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Applied | Test | Interview | OfferAwarded | Rejected | Withdrawn
    status_type = Column(String(30), nullable=False, index=True)

    created_by = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Rows are never updated after insert.
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    # Only meaningful for Test / Interview rows respectively.
    test_type = Column(String(30), nullable=True)
    interview_type = Column(String(30), nullable=True)

    notes = Column(Text, nullable=True)

    application = relationship("Application", back_populates="statuses")
    author = relationship("User")
