"""
Service layer for reading fact-checks and their automated update history.
"""

import uuid

from sqlalchemy.orm import Session

from appwhistler.models.fact_check import FactCheck, FactCheckUpdate
from appwhistler.schemas.fact_check import FactCheckHistoryResponse, FactCheckUpdateResponse
from appwhistler.utils.logger import get_logger

logger = get_logger(__name__)


class FactCheckNotFoundError(Exception):
    """Raised when a fact-check is not found in the database."""
    pass


class FactCheckService:
    """Read-only access to fact-checks for the API."""

    def __init__(self, db: Session) -> None:
        self.db: Session = db

    def get_update_history(self, fact_check_id: uuid.UUID) -> FactCheckHistoryResponse:
        """
        Get a fact-check's current verdict and its update history, newest first.

        Args:
            fact_check_id: UUID of the fact-check

        Returns:
            FactCheckHistoryResponse

        Raises:
            FactCheckNotFoundError: If the fact-check does not exist
        """
        fact_check = self.db.query(FactCheck).filter(FactCheck.id == fact_check_id).first()
        if not fact_check:
            logger.warning("Fact-check not found", fact_check_id=fact_check_id)
            raise FactCheckNotFoundError(f"Fact-check {fact_check_id} not found")

        updates = (self.db.query(FactCheckUpdate)
                   .filter(FactCheckUpdate.fact_check_id == fact_check_id)
                   .order_by(FactCheckUpdate.created_at.desc())
                   .all())

        logger.info("Retrieved fact-check history",
                   fact_check_id=fact_check_id,
                   updates_count=len(updates))

        return FactCheckHistoryResponse(
            fact_check_id=fact_check.id,
            verdict=fact_check.verdict,
            confidence_score=fact_check.confidence_score,
            last_verified_at=fact_check.last_verified_at,
            automated_update_count=fact_check.automated_update_count or 0,
            updates=[FactCheckUpdateResponse.model_validate(update) for update in updates],
        )
