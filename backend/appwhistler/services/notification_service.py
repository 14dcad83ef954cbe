"""
Service layer for notifying users about re-verified fact-checks.
"""

import uuid
from typing import List

from sqlalchemy.orm import Session

from appwhistler.models.fact_check import FactCheck, FactCheckVote
from appwhistler.models.notification import FACT_CHECK_UPDATED, Notification
from appwhistler.schemas.reverification import ReverificationResult
from appwhistler.utils.logger import get_logger

logger = get_logger(__name__)

NOTIFICATION_TITLE = "Fact-Check Updated"
CLAIM_EXCERPT_LENGTH = 50


class NotificationService:
    """
    Service class for writing verdict-change notifications.

    Delivery is best-effort: failures are logged and never raised, so a
    broken notification can not abort a re-verification cycle.
    """

    def __init__(self, db: Session) -> None:
        """
        Initialize the notification service.

        Args:
            db: Database session for operations
        """
        self.db: Session = db

    def get_affected_user_ids(self, fact_check_id: uuid.UUID) -> List[uuid.UUID]:
        """
        Users who voted on a fact-check plus its submitter, deduplicated.

        Args:
            fact_check_id: UUID of the fact-check

        Returns:
            List of user UUIDs, voters first
        """
        voter_rows = (self.db.query(FactCheckVote.user_id)
                      .filter(FactCheckVote.fact_check_id == fact_check_id)
                      .distinct()
                      .all())
        submitter_rows = (self.db.query(FactCheck.submitted_by)
                          .filter(FactCheck.id == fact_check_id, FactCheck.submitted_by.isnot(None))
                          .all())

        user_ids = [row[0] for row in voter_rows] + [row[0] for row in submitter_rows]
        return list(dict.fromkeys(user_ids))

    def notify_verdict_change(self, fact_check: FactCheck, result: ReverificationResult) -> int:
        """
        Write one notification per affected user for a significant change.

        Args:
            fact_check: The re-verified fact-check
            result: The significant re-verification result

        Returns:
            Number of notifications written
        """
        try:
            user_ids = self.get_affected_user_ids(result.fact_check_id)
        except Exception as e:
            self.db.rollback()
            logger.error("Failed to resolve users to notify",
                        fact_check_id=result.fact_check_id,
                        error=str(e))
            return 0

        if not user_ids:
            logger.info("No users to notify", fact_check_id=result.fact_check_id)
            return 0

        message = (
            "A fact-check you interacted with has been updated: "
            f"\"{self._claim_excerpt(fact_check.claim)}\""
        )
        metadata = {
            "fact_check_id": str(result.fact_check_id),
            "old_verdict": result.old_verdict,
            "new_verdict": result.new_verdict,
            "automated": True,
        }

        sent = 0
        for user_id in user_ids:
            try:
                self.db.add(Notification(
                    user_id=user_id,
                    type=FACT_CHECK_UPDATED,
                    title=NOTIFICATION_TITLE,
                    message=message,
                    notification_metadata=metadata,
                ))
                self.db.commit()
                sent += 1
            except Exception as e:
                self.db.rollback()
                logger.error("Failed to notify user",
                            fact_check_id=result.fact_check_id,
                            user_id=user_id,
                            error=str(e))

        logger.info("Notified users about verdict change",
                   fact_check_id=result.fact_check_id,
                   notified=sent,
                   affected=len(user_ids))
        return sent

    @staticmethod
    def _claim_excerpt(claim: str) -> str:
        if len(claim) <= CLAIM_EXCERPT_LENGTH:
            return claim
        return claim[:CLAIM_EXCERPT_LENGTH] + "..."
