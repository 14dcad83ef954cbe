"""
Service layer for re-verification cycle audit logs.
Records cycle counters and aggregates them for operators.
"""

from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from appwhistler.db.database import utcnow
from appwhistler.models.cycle_log import ReverificationCycleLog
from appwhistler.schemas.reverification import CycleStats, ReverificationStatsResponse
from appwhistler.utils.logger import get_logger

logger = get_logger(__name__)


class CycleLogService:
    """
    Service class for cycle log persistence and reporting.

    Only the cycle orchestrator calls ``record_cycle``; the API reads.
    """

    def __init__(self, db: Session) -> None:
        """
        Initialize the cycle log service.

        Args:
            db: Database session for operations
        """
        self.db: Session = db

    def record_cycle(self, stats: CycleStats) -> Optional[ReverificationCycleLog]:
        """
        Persist the counters of a finished cycle.

        Failures are logged and swallowed; the cycle itself already finished.

        Args:
            stats: Counters collected during the cycle

        Returns:
            The created log row, or None if the write failed
        """
        cycle_log = ReverificationCycleLog(
            updated_count=stats.updated,
            unchanged_count=stats.unchanged,
            error_count=stats.errors,
            triggered_by=stats.trigger,
        )

        try:
            self.db.add(cycle_log)
            self.db.commit()
            self.db.refresh(cycle_log)

            logger.info("Recorded fact-check cycle",
                       cycle_log_id=cycle_log.id,
                       updated=stats.updated,
                       unchanged=stats.unchanged,
                       errors=stats.errors)
            return cycle_log

        except Exception as e:
            self.db.rollback()
            logger.error("Failed to log fact-check cycle", error=str(e))
            return None

    def get_stats(self, days: int = 30) -> ReverificationStatsResponse:
        """
        Aggregate cycle counters over the trailing ``days`` days.

        Args:
            days: Size of the reporting window

        Returns:
            ReverificationStatsResponse with totals and the last run time
        """
        since = utcnow() - timedelta(days=days)

        row = (self.db.query(
                   func.count(ReverificationCycleLog.id),
                   func.sum(ReverificationCycleLog.updated_count),
                   func.sum(ReverificationCycleLog.unchanged_count),
                   func.sum(ReverificationCycleLog.error_count),
                   func.max(ReverificationCycleLog.created_at))
               .filter(ReverificationCycleLog.created_at > since)
               .one())

        total_cycles, total_updated, total_unchanged, total_errors, last_run = row

        logger.info("Retrieved re-verification stats", window_days=days, total_cycles=total_cycles)

        return ReverificationStatsResponse(
            window_days=days,
            total_cycles=total_cycles or 0,
            total_updated=total_updated or 0,
            total_unchanged=total_unchanged or 0,
            total_errors=total_errors or 0,
            last_run=last_run,
        )

    def list_recent(self, limit: int = 20) -> Tuple[List[ReverificationCycleLog], int]:
        """
        List the most recent cycle logs, newest first.

        Args:
            limit: Maximum number of rows to return

        Returns:
            Tuple of (cycle_logs, total_count)
        """
        query = self.db.query(ReverificationCycleLog).order_by(ReverificationCycleLog.created_at.desc())
        total = query.count()
        return query.limit(limit).all(), total
