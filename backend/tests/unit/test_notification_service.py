"""
Tests for the notification service.
"""

import uuid
from typing import Callable
from unittest.mock import patch

import pytest
from sqlalchemy.orm import Session

from appwhistler.models.fact_check import FactCheck
from appwhistler.models.notification import Notification
from appwhistler.schemas.reverification import ReverificationResult
from appwhistler.services.notification_service import NotificationService


def _result_for(fact_check: FactCheck) -> ReverificationResult:
    return ReverificationResult(
        fact_check_id=fact_check.id,
        verdict_changed=True,
        old_verdict="TRUE",
        new_verdict="FALSE",
        old_confidence=0.9,
        new_confidence=0.85,
    )


class TestNotificationService:
    """Test the NotificationService class."""

    @pytest.fixture
    def service(self, test_db: Session) -> NotificationService:
        return NotificationService(test_db)

    def test_notifies_voters_and_submitter_once_each(self, service: NotificationService, test_db: Session,
                                                     make_fact_check: Callable[..., FactCheck],
                                                     add_vote: Callable) -> None:
        """A submitter who also voted receives a single notification."""
        submitter = uuid.uuid4()
        voter = uuid.uuid4()
        fact_check = make_fact_check(submitted_by=submitter)
        add_vote(fact_check, user_id=voter)
        add_vote(fact_check, user_id=submitter, vote="disagree")

        sent = service.notify_verdict_change(fact_check, _result_for(fact_check))

        assert sent == 2
        notified = {n.user_id for n in test_db.query(Notification).all()}
        assert notified == {submitter, voter}

    def test_notification_content(self, service: NotificationService, test_db: Session,
                                  make_fact_check: Callable[..., FactCheck]) -> None:
        claim = "A" * 80
        fact_check = make_fact_check(claim=claim, submitted_by=uuid.uuid4())

        service.notify_verdict_change(fact_check, _result_for(fact_check))

        notification = test_db.query(Notification).one()
        assert notification.type == "fact_check_updated"
        assert notification.title == "Fact-Check Updated"
        assert "A" * 50 + "..." in notification.message
        assert "A" * 51 not in notification.message
        assert notification.notification_metadata == {
            "fact_check_id": str(fact_check.id),
            "old_verdict": "TRUE",
            "new_verdict": "FALSE",
            "automated": True,
        }
        assert notification.is_read is False

    def test_short_claim_is_not_marked_truncated(self, service: NotificationService, test_db: Session,
                                                 make_fact_check: Callable[..., FactCheck]) -> None:
        fact_check = make_fact_check(claim="Short claim.", submitted_by=uuid.uuid4())

        service.notify_verdict_change(fact_check, _result_for(fact_check))

        assert test_db.query(Notification).one().message.endswith("\"Short claim.\"")

    def test_no_affected_users_is_a_no_op(self, service: NotificationService, test_db: Session,
                                          make_fact_check: Callable[..., FactCheck]) -> None:
        fact_check = make_fact_check(submitted_by=None)

        assert service.notify_verdict_change(fact_check, _result_for(fact_check)) == 0
        assert test_db.query(Notification).count() == 0

    def test_write_failures_are_swallowed(self, service: NotificationService, test_db: Session,
                                          make_fact_check: Callable[..., FactCheck]) -> None:
        fact_check = make_fact_check(submitted_by=uuid.uuid4())
        result = _result_for(fact_check)

        with patch.object(test_db, "commit", side_effect=RuntimeError("insert failed")):
            sent = service.notify_verdict_change(fact_check, result)

        assert sent == 0
        assert test_db.query(Notification).count() == 0

    def test_lookup_failure_is_swallowed(self, service: NotificationService,
                                         make_fact_check: Callable[..., FactCheck]) -> None:
        fact_check = make_fact_check(submitted_by=uuid.uuid4())

        with patch.object(service, "get_affected_user_ids", side_effect=RuntimeError("query failed")):
            assert service.notify_verdict_change(fact_check, _result_for(fact_check)) == 0

    def test_one_failing_user_does_not_block_others(self, service: NotificationService, test_db: Session,
                                                    make_fact_check: Callable[..., FactCheck],
                                                    add_vote: Callable) -> None:
        fact_check = make_fact_check(submitted_by=uuid.uuid4())
        add_vote(fact_check)
        real_commit = test_db.commit
        calls = {"count": 0}

        def flaky_commit() -> None:
            calls["count"] += 1
            if calls["count"] == 1:
                raise RuntimeError("transient failure")
            real_commit()

        with patch.object(test_db, "commit", side_effect=flaky_commit):
            sent = service.notify_verdict_change(fact_check, _result_for(fact_check))

        assert sent == 1
        assert test_db.query(Notification).count() == 1
