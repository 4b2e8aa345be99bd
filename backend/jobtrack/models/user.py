# jobtrack/models/user.py
from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, func
from sqlalchemy.orm import relationship

from jobtrack.core.base import Base
from jobtrack.models.enums import Role


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    # Always stored trimmed + lower-cased.
    email = Column(String(255), nullable=False)
    # Opaque credential hash; never the raw password.
    password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=Role.USER.value, server_default=Role.USER.value, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    # Soft delete: boolean is the filter, timestamp is audit metadata.
    deleted = Column(Boolean, nullable=False, default=False, server_default="false")
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    is_verified = Column(Boolean, nullable=False, default=False, server_default="false")
    failed_login_attempts = Column(Integer, nullable=False, default=0, server_default="0")

    applications = relationship(
        "Application",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    tokens = relationship(
        "Token",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # One live account per email; soft-deleted rows free the address for reuse.
    __table_args__ = (
        Index(
            "uq_users_email_active",
            "email",
            unique=True,
            postgresql_where=deleted.is_(False),
            sqlite_where=deleted.is_(False),
        ),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value
