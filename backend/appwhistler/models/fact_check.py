"""
SQLAlchemy models for fact-checks, their votes, and their update history.
"""

import enum
import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from appwhistler.db.database import Base, JSONType, utcnow

AUTOMATED_REVERIFICATION_REASON = "automated_reverification"


class Verdict(str, enum.Enum):
    """Categorical outcome of fact-checking a claim."""

    TRUE = "TRUE"
    FALSE = "FALSE"
    MISLEADING = "MISLEADING"
    UNVERIFIED = "UNVERIFIED"


class FactCheck(Base):
    """
    Database model for a crowd-submitted claim and its current verdict.

    A null ``verified_by`` means no analyst has reviewed the claim yet, which
    keeps it out of automated re-verification.
    """

    __tablename__ = "fact_checks"
    __table_args__ = (
        CheckConstraint(
            "last_verified_at IS NULL OR last_verified_at >= created_at",
            name="ck_fact_checks_verified_after_created",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    claim = Column(Text, nullable=False)
    verdict = Column(String(20), nullable=False, index=True)  # TRUE, FALSE, MISLEADING, UNVERIFIED
    confidence_score = Column(Float, nullable=False, default=0.0)  # 0.0 to 1.0
    category = Column(String(100), nullable=True)
    sources = Column(JSONType, nullable=True)  # [{"label": ..., "url": ...}]
    explanation = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
    last_verified_at = Column(DateTime, nullable=True, index=True)
    submitted_by = Column(Uuid, nullable=True, index=True)
    verified_by = Column(Uuid, nullable=True)
    automated_update_count = Column(Integer, nullable=False, default=0)

    votes = relationship("FactCheckVote", back_populates="fact_check", cascade="all, delete-orphan")
    updates = relationship(
        "FactCheckUpdate",
        back_populates="fact_check",
        order_by="FactCheckUpdate.created_at",
    )

    def __repr__(self) -> str:
        return f"<FactCheck(id={self.id}, verdict='{self.verdict}', confidence={self.confidence_score})>"


class FactCheckVote(Base):
    """A user's vote on a fact-check; voters are notified when the verdict moves."""

    __tablename__ = "fact_check_votes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    fact_check_id = Column(Uuid, ForeignKey("fact_checks.id"), nullable=False, index=True)
    user_id = Column(Uuid, nullable=False, index=True)
    vote = Column(String(20), nullable=False)  # agree, disagree
    created_at = Column(DateTime, nullable=False, default=utcnow)

    fact_check = relationship("FactCheck", back_populates="votes")

    def __repr__(self) -> str:
        return f"<FactCheckVote(fact_check_id={self.fact_check_id}, user_id={self.user_id}, vote='{self.vote}')>"


class FactCheckUpdate(Base):
    """
    Append-only history of significant verdict changes.

    Rows are written once per detected change and never edited.
    """

    __tablename__ = "fact_check_updates"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    fact_check_id = Column(Uuid, ForeignKey("fact_checks.id"), nullable=False, index=True)
    old_verdict = Column(String(20), nullable=False)
    new_verdict = Column(String(20), nullable=False)
    old_confidence = Column(Float, nullable=False)
    new_confidence = Column(Float, nullable=False)
    reason = Column(String(50), nullable=False, default=AUTOMATED_REVERIFICATION_REASON)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    fact_check = relationship("FactCheck", back_populates="updates")

    def __repr__(self) -> str:
        return f"<FactCheckUpdate(fact_check_id={self.fact_check_id}, {self.old_verdict} -> {self.new_verdict})>"
