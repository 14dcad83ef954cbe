"""
Scheduled re-verification of stale fact-checks.

One cycle scans for stale claims, re-verifies them one at a time, notifies
users about significant changes, and records the cycle's counters.
"""

import enum
import threading
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from croniter import croniter
from sqlalchemy.orm import Session

from appwhistler.config import Settings, get_settings
from appwhistler.db.database import SessionLocal
from appwhistler.models.fact_check import FactCheck
from appwhistler.schemas.reverification import CycleStats, ReverificationResult
from appwhistler.services.cycle_log_service import CycleLogService
from appwhistler.services.notification_service import NotificationService
from appwhistler.services.reverification_service import ReverificationService, VerificationProvider
from appwhistler.services.staleness_scanner import StalenessScanner
from appwhistler.utils.logger import get_logger, set_correlation_id

logger = get_logger(__name__)


class InvalidScheduleError(ValueError):
    """Raised when the cron schedule cannot be parsed or never fires."""
    pass


def next_fire_time(expression: str, after: datetime) -> datetime:
    """
    First time strictly after ``after`` at which a cron expression fires.

    Accepts five fields, or six with a leading seconds field, and month and
    weekday names.

    Raises:
        InvalidScheduleError: If the expression is invalid or never fires
    """
    try:
        return croniter(expression, after, second_at_beginning=True).get_next(datetime)
    except ValueError as e:
        raise InvalidScheduleError(f"Invalid cron schedule '{expression}': {e}") from e


class SchedulerState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"


class ReverificationOrchestrator:
    """
    Owns the re-verification schedule and runs cycles.

    ``start``/``stop`` arm and disarm the schedule. Cycle execution is
    serialized: a scheduled or manual trigger that arrives while another
    cycle is in progress is skipped, not queued.
    """

    def __init__(
        self,
        provider: VerificationProvider,
        session_factory: Callable[[], Session] = SessionLocal,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            provider: Verification provider used for every claim
            session_factory: Creates one database session per cycle
            settings: Application settings, defaults to the cached settings
            clock: Local-time source used to evaluate the cron schedule
        """
        self.provider = provider
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self.clock = clock

        self.state = SchedulerState.IDLE
        self._state_lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._scheduler_thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self.state == SchedulerState.RUNNING

    @property
    def cycle_in_progress(self) -> bool:
        return self._cycle_lock.locked()

    def start(self) -> bool:
        """
        Arm the recurring schedule.

        Returns:
            True if the scheduler was started, False if it was already running

        Raises:
            InvalidScheduleError: If the configured cron expression is invalid
                or never fires
        """
        with self._state_lock:
            if self.state == SchedulerState.RUNNING:
                logger.warning("Automated fact-checker already running")
                return False

            expression = self.settings.fact_check_cron_schedule
            first_run = next_fire_time(expression, self.clock())

            self._stop_event = threading.Event()
            self._scheduler_thread = threading.Thread(
                target=self._schedule_loop,
                args=(expression, self._stop_event),
                name="reverification-scheduler",
                daemon=True,
            )
            self._scheduler_thread.start()
            self.state = SchedulerState.RUNNING

        logger.info("Starting automated fact-checker", schedule=expression, first_run=first_run.isoformat())
        return True

    def stop(self, timeout: float = 5.0) -> None:
        """Disarm the schedule. Safe to call when not running."""
        with self._state_lock:
            if self.state == SchedulerState.IDLE:
                logger.info("Automated fact-checker not running")
                return

            self._stop_event.set()
            thread = self._scheduler_thread
            self._scheduler_thread = None
            self.state = SchedulerState.IDLE

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)

        logger.info("Automated fact-checker stopped")

    def _schedule_loop(self, expression: str, stop_event: threading.Event) -> None:
        try:
            while not stop_event.is_set():
                now = self.clock()
                next_run = next_fire_time(expression, now)
                logger.info("Next fact-check cycle scheduled", next_run=next_run.isoformat())

                if stop_event.wait(timeout=max((next_run - now).total_seconds(), 0.0)):
                    break
                self.run_cycle(trigger="scheduled")

        except Exception as e:
            logger.error("Fact-check scheduler stopped unexpectedly",
                        schedule=expression,
                        error=str(e),
                        error_type=type(e).__name__)
            with self._state_lock:
                # A stop() or restart may already own the state
                if self._stop_event is stop_event:
                    self._scheduler_thread = None
                    self.state = SchedulerState.IDLE

    def run_manual(self) -> Optional[CycleStats]:
        """Run one cycle immediately, bypassing the schedule."""
        logger.info("Manual fact-check cycle triggered")
        return self.run_cycle(trigger="manual")

    def run_cycle(self, trigger: str = "scheduled") -> Optional[CycleStats]:
        """
        Run a single re-verification cycle.

        Args:
            trigger: What started the cycle (scheduled or manual)

        Returns:
            CycleStats for a completed cycle, or None if the cycle was
            skipped because another one is in progress or it aborted
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.warning("Fact-check cycle already in progress, skipping trigger", trigger=trigger)
            return None

        try:
            set_correlation_id()
            return self._execute_cycle(trigger)
        except Exception as e:
            logger.error("Automated fact-check cycle failed",
                        trigger=trigger,
                        error=str(e),
                        error_type=type(e).__name__)
            return None
        finally:
            self._cycle_lock.release()

    def _execute_cycle(self, trigger: str) -> CycleStats:
        logger.info("Starting automated fact-check cycle", trigger=trigger)

        db = self.session_factory()
        try:
            stale_claims = StalenessScanner(db).find_stale_claims(
                threshold_days=self.settings.fact_check_stale_days,
                batch_size=self.settings.reverification_batch_size,
            )
            stats = CycleStats(trigger=trigger, candidates=len(stale_claims))

            if not stale_claims:
                logger.info("No stale claims found. All fact-checks are up to date.")
                if self.settings.log_empty_cycles:
                    CycleLogService(db).record_cycle(stats)
                return stats

            logger.info("Found stale claims to re-verify", count=len(stale_claims))

            significant_changes = self._reverify_claims(db, stale_claims, stats)

            notifier = NotificationService(db)
            for fact_check, result in significant_changes:
                stats.notifications_sent += notifier.notify_verdict_change(fact_check, result)

            logger.info("Fact-check cycle complete",
                       trigger=trigger,
                       processed=stats.processed,
                       candidates=stats.candidates,
                       updated=stats.updated,
                       unchanged=stats.unchanged,
                       errors=stats.errors,
                       notifications_sent=stats.notifications_sent)

            CycleLogService(db).record_cycle(stats)
            return stats
        finally:
            db.close()

    def _reverify_claims(
        self,
        db: Session,
        stale_claims: List[FactCheck],
        stats: CycleStats,
    ) -> List[Tuple[FactCheck, ReverificationResult]]:
        """Re-verify claims in order; a failing claim is counted and skipped."""
        reverifier = ReverificationService(db, self.provider)
        significant_changes: List[Tuple[FactCheck, ReverificationResult]] = []

        # Read ids up front; a rollback expires every loaded row
        claim_ids = [fact_check.id for fact_check in stale_claims]

        for fact_check_id, fact_check in zip(claim_ids, stale_claims):
            try:
                result = reverifier.reverify(fact_check)
            except Exception as e:
                stats.errors += 1
                logger.error("Error re-verifying claim",
                            fact_check_id=fact_check_id,
                            error=str(e),
                            error_type=type(e).__name__)
                continue

            if result.verdict_changed:
                stats.updated += 1
                significant_changes.append((fact_check, result))
            else:
                stats.unchanged += 1

        return significant_changes
