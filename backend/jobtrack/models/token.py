# jobtrack/models/token.py
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from jobtrack.core.base import Base


class Token(Base):
    __tablename__ = "tokens"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    token = Column(String(100), unique=True, index=True, nullable=False)

    # verify | reset | session
    purpose = Column(String(20), nullable=False, index=True)

    # Fixed at issue time; expiry is evaluated on read/consume only.
    expires_at = Column(DateTime(timezone=True), nullable=False)

    # Single-use: once true the token is permanently invalid.
    used = Column(Boolean, nullable=False, default=False, server_default="false")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="tokens")
