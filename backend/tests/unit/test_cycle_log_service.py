"""
Tests for the cycle log service.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.orm import Session

from appwhistler.db.database import utcnow
from appwhistler.models.cycle_log import ReverificationCycleLog
from appwhistler.schemas.reverification import CycleStats
from appwhistler.services.cycle_log_service import CycleLogService


def _add_log(db: Session, updated: int, unchanged: int, errors: int, days_ago: int = 0,
             triggered_by: str = "scheduled") -> ReverificationCycleLog:
    cycle_log = ReverificationCycleLog(
        updated_count=updated,
        unchanged_count=unchanged,
        error_count=errors,
        triggered_by=triggered_by,
        created_at=utcnow() - timedelta(days=days_ago),
    )
    db.add(cycle_log)
    db.commit()
    return cycle_log


class TestCycleLogService:
    """Test the CycleLogService class."""

    @pytest.fixture
    def service(self, test_db: Session) -> CycleLogService:
        return CycleLogService(test_db)

    def test_record_cycle(self, service: CycleLogService, test_db: Session) -> None:
        stats = CycleStats(trigger="manual", candidates=6, updated=2, unchanged=3, errors=1)

        cycle_log = service.record_cycle(stats)

        assert cycle_log is not None
        stored = test_db.query(ReverificationCycleLog).one()
        assert (stored.updated_count, stored.unchanged_count, stored.error_count) == (2, 3, 1)
        assert stored.triggered_by == "manual"
        assert stored.created_at is not None

    def test_record_cycle_failure_is_swallowed(self, service: CycleLogService, test_db: Session) -> None:
        with patch.object(test_db, "commit", side_effect=RuntimeError("disk full")):
            assert service.record_cycle(CycleStats(updated=1)) is None

        assert test_db.query(ReverificationCycleLog).count() == 0

    def test_get_stats_sums_cycles_inside_window(self, service: CycleLogService, test_db: Session) -> None:
        _add_log(test_db, updated=2, unchanged=5, errors=1, days_ago=1)
        _add_log(test_db, updated=1, unchanged=3, errors=0, days_ago=10)
        _add_log(test_db, updated=9, unchanged=9, errors=9, days_ago=45)

        stats = service.get_stats(days=30)

        assert stats.window_days == 30
        assert stats.total_cycles == 2
        assert (stats.total_updated, stats.total_unchanged, stats.total_errors) == (3, 8, 1)
        assert stats.last_run is not None
        assert stats.last_run > utcnow() - timedelta(days=2)

    def test_get_stats_with_no_cycles(self, service: CycleLogService) -> None:
        stats = service.get_stats(days=7)

        assert stats.total_cycles == 0
        assert stats.total_updated == 0
        assert stats.last_run is None

    def test_list_recent_newest_first(self, service: CycleLogService, test_db: Session) -> None:
        _add_log(test_db, updated=0, unchanged=1, errors=0, days_ago=3)
        _add_log(test_db, updated=1, unchanged=0, errors=0, days_ago=1, triggered_by="manual")
        _add_log(test_db, updated=0, unchanged=0, errors=1, days_ago=2)

        logs, total = service.list_recent(limit=2)

        assert total == 3
        assert [log.triggered_by for log in logs] == ["manual", "scheduled"]
        assert logs[1].error_count == 1
