"""
Long-running re-verification worker.
Arms the cron schedule and consumes manual re-verification requests from Kafka.
"""

import json
import signal
import sys
from typing import Any, Dict, Optional

from kafka import KafkaConsumer

from appwhistler.agents.claim_verifier import ClaimVerifierAgent
from appwhistler.config import get_settings
from appwhistler.db.database import init_db
from appwhistler.utils.logger import get_logger, set_correlation_id, setup_logging
from appwhistler.workers.cycle_orchestrator import ReverificationOrchestrator

settings = get_settings()
logger = get_logger(__name__)


class ReverificationWorker:
    """
    Worker process hosting the re-verification orchestrator.

    The schedule runs on the orchestrator's background thread; manual
    requests arrive on this thread through the Kafka consumer. Both paths
    share the orchestrator, so they never run cycles concurrently.
    """

    def __init__(self, orchestrator: ReverificationOrchestrator) -> None:
        """Initialize the worker around an orchestrator."""
        self.running = False
        self.consumer: Optional[KafkaConsumer] = None
        self.orchestrator = orchestrator

        logger.info("Re-verification worker initialized")

    def _setup_consumer(self) -> None:
        """Set up Kafka consumer with error handling."""
        try:
            self.consumer = KafkaConsumer(
                settings.kafka_topic_reverification,
                bootstrap_servers=settings.kafka_bootstrap_servers.split(','),
                value_deserializer=lambda m: json.loads(m.decode('utf-8')),
                key_deserializer=lambda m: m.decode('utf-8') if m else None,
                group_id='reverification-workers',
                auto_offset_reset='latest',
                enable_auto_commit=True,
            )

            logger.info("Kafka consumer setup complete",
                       topic=settings.kafka_topic_reverification,
                       bootstrap_servers=settings.kafka_bootstrap_servers)

        except Exception as e:
            logger.error("Failed to setup Kafka consumer", error=str(e))
            raise

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        def signal_handler(signum, frame):
            logger.info("Received shutdown signal", signal=signum)
            self.stop()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def handle_request(self, message: Dict[str, Any]) -> None:
        """
        Run a manual cycle for one Kafka request.

        Args:
            message: Request payload published by the API
        """
        request_id = message.get("request_id")
        set_correlation_id(request_id)

        logger.info("Worker picked up manual re-verification request",
                   request_id=request_id,
                   requested_by=message.get("requested_by"))

        stats = self.orchestrator.run_manual()
        if stats is None:
            logger.warning("Manual re-verification request did not complete a cycle", request_id=request_id)
            return

        logger.info("Manual re-verification request finished",
                   request_id=request_id,
                   updated=stats.updated,
                   unchanged=stats.unchanged,
                   errors=stats.errors)

    def run(self) -> None:
        """
        Main worker loop.

        Arms the schedule, then blocks consuming manual requests.
        """
        logger.info("Starting re-verification worker")

        try:
            self._setup_signal_handlers()
            self.orchestrator.start()
            self._setup_consumer()

            self.running = True
            logger.info("Worker ready to process re-verification requests")

            for message in self.consumer:
                if not self.running:
                    break

                try:
                    self.handle_request(message.value or {})
                except Exception as e:
                    logger.error("Error processing message",
                                error=str(e),
                                message_key=message.key,
                                message_value=message.value)

        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        except Exception as e:
            logger.error("Worker error", error=str(e))
        finally:
            self.stop()

    def stop(self) -> None:
        """Stop the worker gracefully."""
        logger.info("Stopping re-verification worker")

        self.running = False
        self.orchestrator.stop()

        if self.consumer:
            try:
                self.consumer.close()
                logger.info("Kafka consumer closed")
            except Exception as e:
                logger.error("Error closing Kafka consumer", error=str(e))
            self.consumer = None

        logger.info("Re-verification worker stopped")


def main() -> None:
    """Main entry point for the re-verification worker."""
    setup_logging(settings.log_level)
    logger.info("AppWhistler - Re-verification Worker starting")

    try:
        init_db()
        orchestrator = ReverificationOrchestrator(provider=ClaimVerifierAgent())
        worker = ReverificationWorker(orchestrator)
        worker.run()
    except Exception as e:
        logger.error("Failed to start re-verification worker", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
