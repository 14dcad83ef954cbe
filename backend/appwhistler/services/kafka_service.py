"""
Service for Kafka message publishing.
Carries manual re-verification requests from the API to the worker.
"""

import json
import uuid
from typing import Optional

from kafka import KafkaProducer
from kafka.errors import KafkaError

from appwhistler.config import get_settings
from appwhistler.db.database import utcnow
from appwhistler.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


class KafkaConnectionError(Exception):
    """Raised when Kafka connection fails."""
    pass


class KafkaService:
    """
    Service class for Kafka message publishing.

    The worker process owns the re-verification scheduler, so manual runs
    requested over HTTP are handed to it through a Kafka topic.
    """

    def __init__(self) -> None:
        """Initialize Kafka producer."""
        self.producer: Optional[KafkaProducer] = None
        self._initialize_producer()

    def _initialize_producer(self) -> None:
        """
        Initialize Kafka producer with error handling.

        Raises:
            KafkaConnectionError: If unable to connect to Kafka
        """
        try:
            self.producer = KafkaProducer(
                bootstrap_servers=settings.kafka_bootstrap_servers.split(','),
                value_serializer=lambda v: json.dumps(v).encode('utf-8'),
                key_serializer=lambda k: str(k).encode('utf-8') if k else None,
                acks='all',
                retries=3,
                retry_backoff_ms=100
            )

            logger.info("Kafka producer initialized",
                       bootstrap_servers=settings.kafka_bootstrap_servers)

        except Exception as e:
            logger.error("Failed to initialize Kafka producer", error=str(e))
            raise KafkaConnectionError(f"Cannot connect to Kafka: {str(e)}")

    def publish_reverification_request(self, request_id: uuid.UUID, requested_by: Optional[str] = None) -> bool:
        """
        Publish a manual re-verification request to the Kafka topic.

        Args:
            request_id: UUID identifying the request, reused as correlation ID
            requested_by: Optional operator name for the audit trail

        Returns:
            True if message was published successfully

        Raises:
            KafkaConnectionError: If publishing fails
        """
        if not self.producer:
            raise KafkaConnectionError("Kafka producer not initialized")

        message = {
            "request_id": str(request_id),
            "requested_by": requested_by,
            "requested_at": utcnow().isoformat(),
        }

        try:
            future = self.producer.send(
                topic=settings.kafka_topic_reverification,
                key=str(request_id),
                value=message
            )

            record_metadata = future.get(timeout=10)

            logger.info("Re-verification request published to Kafka",
                       request_id=request_id,
                       topic=record_metadata.topic,
                       partition=record_metadata.partition,
                       offset=record_metadata.offset)

            return True

        except KafkaError as e:
            logger.error("Kafka publish error", request_id=request_id, error=str(e))
            raise KafkaConnectionError(f"Failed to publish message: {str(e)}")

        except Exception as e:
            logger.error("Unexpected error publishing to Kafka", request_id=request_id, error=str(e))
            raise KafkaConnectionError(f"Unexpected error: {str(e)}")

    def close(self) -> None:
        """Close the Kafka producer connection."""
        if self.producer:
            try:
                self.producer.close(timeout=5)
                logger.info("Kafka producer closed")
            except Exception as e:
                logger.error("Error closing Kafka producer", error=str(e))

    def __enter__(self) -> "KafkaService":
        return self

    def __exit__(self, exc_type: Optional[type], exc_val: Optional[BaseException], exc_tb: Optional[object]) -> None:
        self.close()
