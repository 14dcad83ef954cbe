"""
Tests for the re-verification worker.
"""

from unittest.mock import MagicMock, Mock

import pytest

from appwhistler.schemas.reverification import CycleStats
from appwhistler.utils.logger import get_correlation_id
from appwhistler.workers.reverification_worker import ReverificationWorker


class TestReverificationWorker:
    """Test the ReverificationWorker class."""

    @pytest.fixture
    def orchestrator(self) -> Mock:
        return Mock()

    @pytest.fixture
    def worker(self, orchestrator: Mock) -> ReverificationWorker:
        return ReverificationWorker(orchestrator)

    def test_handle_request_runs_manual_cycle(self, worker: ReverificationWorker, orchestrator: Mock) -> None:
        orchestrator.run_manual.return_value = CycleStats(trigger="manual", updated=1, unchanged=2)

        worker.handle_request({"request_id": "req-123", "requested_by": "ops"})

        orchestrator.run_manual.assert_called_once_with()
        assert get_correlation_id() == "req-123"

    def test_handle_request_when_cycle_skipped(self, worker: ReverificationWorker, orchestrator: Mock) -> None:
        orchestrator.run_manual.return_value = None

        worker.handle_request({"request_id": "req-456"})

        orchestrator.run_manual.assert_called_once_with()

    def test_stop_closes_consumer_and_scheduler(self, worker: ReverificationWorker, orchestrator: Mock) -> None:
        consumer = Mock()
        worker.consumer = consumer
        worker.running = True

        worker.stop()

        assert worker.running is False
        orchestrator.stop.assert_called_once_with()
        consumer.close.assert_called_once_with()
        assert worker.consumer is None

    def test_run_dispatches_messages_and_survives_failures(self, worker: ReverificationWorker,
                                                           orchestrator: Mock) -> None:
        """A failing request is logged and the next one still runs."""
        messages = [Mock(key="a", value={"request_id": "a"}), Mock(key="b", value={"request_id": "b"})]
        orchestrator.run_manual.side_effect = [RuntimeError("boom"), CycleStats(trigger="manual")]

        def setup_consumer() -> None:
            worker.consumer = MagicMock()
            worker.consumer.__iter__.return_value = iter(messages)

        worker._setup_consumer = setup_consumer
        worker._setup_signal_handlers = Mock()

        worker.run()

        orchestrator.start.assert_called_once_with()
        assert orchestrator.run_manual.call_count == 2
        orchestrator.stop.assert_called_once_with()
