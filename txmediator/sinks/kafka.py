"""Kafka sink for shipping transactions to a Kafka topic."""

import logging
from dataclasses import dataclass
from typing import Any

from confluent_kafka import KafkaException, Producer

from txmediator.config import KafkaConfig
from txmediator.exceptions import SinkError
from txmediator.models.transaction import Transaction
from txmediator.sinks.serialization import to_json

logger = logging.getLogger(__name__)


@dataclass
class ProducerStats:
    """Track producer delivery statistics."""

    sent: int = 0
    delivered: int = 0
    failed: int = 0

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        total = self.delivered + self.failed
        return self.delivered / total if total > 0 else 0.0


class KafkaSink:
    """Output transactions to a Kafka topic, keyed by flow id."""

    def __init__(self, config: KafkaConfig | str, flush_timeout: float = 30.0) -> None:
        """Initialize Kafka sink.

        Parameters
        ----------
        config : KafkaConfig | str
            Producer configuration or bootstrap servers string.
        flush_timeout : float
            Seconds to wait for delivery at the end of each batch.
        """
        if isinstance(config, str):
            config = KafkaConfig(bootstrap_servers=config)

        self.config = config
        self.flush_timeout = flush_timeout
        self.producer = Producer(config.to_dict())
        self.stats = ProducerStats()

    def _delivery_callback(self, err: Any, msg: Any) -> None:
        """Handle delivery reports."""
        if err:
            self.stats.failed += 1
            logger.error("Delivery failed: %s", err)
        else:
            self.stats.delivered += 1
            logger.debug("Delivered to %s[%d]@%d", msg.topic(), msg.partition(), msg.offset())

    @staticmethod
    def _get_key(record: Any) -> str | None:
        if isinstance(record, Transaction):
            return record.flow_id
        if isinstance(record, dict):
            return record.get("flowId")
        return None

    def send(self, topic: str, record: Any) -> None:
        """Send a single record to a Kafka topic."""
        key = self._get_key(record)
        try:
            self.producer.produce(
                topic=topic,
                key=key.encode("utf-8") if key else None,
                value=to_json(record).encode("utf-8"),
                callback=self._delivery_callback,
            )
        except (BufferError, KafkaException) as e:
            raise SinkError(f"Could not produce to {topic}: {e}") from e
        self.stats.sent += 1
        self.producer.poll(0)

    def write_batch(self, topic: str, records: list[Any]) -> None:
        """Write a batch of records to a Kafka topic and wait for delivery."""
        logger.debug("Writing batch to %s: %d records", topic, len(records))

        for record in records:
            self.send(topic, record)

        remaining = self.flush()
        if remaining:
            raise SinkError(f"{remaining} messages still undelivered to {topic} after {self.flush_timeout}s")
        logger.debug("Batch complete: sent=%d, delivered=%d, failed=%d",
                     self.stats.sent, self.stats.delivered, self.stats.failed)

    def flush(self) -> int:
        """Flush pending messages; returns the number still queued."""
        return self.producer.flush(self.flush_timeout)

    def close(self) -> None:
        """Flush and close the producer."""
        self.flush()
        logger.info(
            "Kafka sink closed: sent=%d, delivered=%d, failed=%d",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
        )
