"""
SQLAlchemy model for user notifications.
"""

import uuid

from sqlalchemy import Boolean, Column, DateTime, String, Text, Uuid

from appwhistler.db.database import Base, JSONType, utcnow

FACT_CHECK_UPDATED = "fact_check_updated"


class Notification(Base):
    """
    Database model for an in-app notification addressed to one user.

    Re-verification writes one row per affected user whenever a
    fact-check's verdict changes significantly.
    """

    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid, nullable=False, index=True)
    type = Column(String(50), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    notification_metadata = Column("metadata", JSONType, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user_id={self.user_id}, type='{self.type}')>"
