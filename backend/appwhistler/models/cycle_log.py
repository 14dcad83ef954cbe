"""
SQLAlchemy model for automated re-verification cycle statistics.
"""

import uuid

from sqlalchemy import Column, DateTime, Integer, String, Uuid

from appwhistler.db.database import Base, utcnow


class ReverificationCycleLog(Base):
    """One row per completed re-verification cycle. Append-only."""

    __tablename__ = "automated_fact_check_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    updated_count = Column(Integer, nullable=False, default=0)
    unchanged_count = Column(Integer, nullable=False, default=0)
    error_count = Column(Integer, nullable=False, default=0)
    triggered_by = Column(String(20), nullable=False, default="scheduled")  # scheduled, manual
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    def __repr__(self) -> str:
        return (
            f"<ReverificationCycleLog(updated={self.updated_count}, "
            f"unchanged={self.unchanged_count}, errors={self.error_count})>"
        )
