"""
Finds analyst-reviewed fact-checks whose last verification has gone stale.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from appwhistler.db.database import utcnow
from appwhistler.models.fact_check import FactCheck
from appwhistler.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_STALE_THRESHOLD_DAYS = 90
DEFAULT_BATCH_SIZE = 50


class StalenessScanner:
    """Read-only query over the claim store for re-verification candidates."""

    def __init__(self, db: Session) -> None:
        self.db: Session = db

    def find_stale_claims(
        self,
        threshold_days: int = DEFAULT_STALE_THRESHOLD_DAYS,
        batch_size: int = DEFAULT_BATCH_SIZE,
        now: Optional[datetime] = None,
    ) -> List[FactCheck]:
        """
        Return up to ``batch_size`` stale fact-checks, oldest first.

        A fact-check is stale when it was created before the cutoff and has
        either never been re-verified or was last verified before the same
        cutoff. Claims no analyst has reviewed (``verified_by`` is null) are
        never returned.

        Args:
            threshold_days: Age in days after which a verification is stale
            batch_size: Maximum number of claims to return
            now: Reference time, defaults to the current UTC time

        Returns:
            List of FactCheck rows ordered by ``created_at`` ascending
        """
        if threshold_days < 0:
            raise ValueError("threshold_days must not be negative")
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        cutoff = (now or utcnow()) - timedelta(days=threshold_days)

        stale_claims = (
            self.db.query(FactCheck)
            .filter(
                FactCheck.created_at < cutoff,
                or_(FactCheck.last_verified_at.is_(None), FactCheck.last_verified_at < cutoff),
                FactCheck.verified_by.isnot(None),
            )
            .order_by(FactCheck.created_at.asc())
            .limit(batch_size)
            .all()
        )

        logger.info("Stale claim scan complete",
                   cutoff=cutoff.isoformat(),
                   batch_size=batch_size,
                   found=len(stale_claims))

        return stale_claims
