"""Short-lived producer used to append messages to an owned topic."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from kafka import KafkaProducer
from kafka.errors import KafkaError

from owned_topics.core.config import BrokerConfig
from owned_topics.core.exceptions import BrokerUnavailableError
from owned_topics.domain.models.topic import PublishResult

logger = logging.getLogger(__name__)

ProducerFactory = Callable[..., KafkaProducer]


def _encode(s: Optional[str]) -> Optional[bytes]:
    return s.encode("utf-8") if isinstance(s, str) else s


class KafkaPublisher:
    """Sends one message per call over its own `KafkaProducer`."""

    def __init__(self, config: BrokerConfig, producer_factory: ProducerFactory = KafkaProducer) -> None:
        self._config = config
        self._producer_factory = producer_factory

    @contextmanager
    def _session(self) -> Iterator[KafkaProducer]:
        try:
            producer = self._producer_factory(
                **self._config.common_kwargs(),
                key_serializer=_encode,
                value_serializer=_encode,
                acks="all",
                retries=0,
            )
        except (KafkaError, OSError) as exc:
            raise BrokerUnavailableError(f"cannot connect producer: {exc}") from exc
        try:
            yield producer
        finally:
            producer.close()

    def publish(self, topic: str, key: Optional[str], value: str) -> PublishResult:
        """Send (*key*, *value*) to *topic* and wait for the broker's ack."""
        with self._session() as producer:
            try:
                future = producer.send(topic, key=key, value=value)
                producer.flush()
                meta = future.get(timeout=self._config.request_timeout_ms / 1000)
            except (KafkaError, OSError) as exc:
                logger.warning("Publishing to %s failed: %s", topic, exc)
                raise BrokerUnavailableError(f"publish to {topic} failed: {exc}") from exc
        logger.debug("Published to %s p%d@%d", meta.topic, meta.partition, meta.offset)
        return PublishResult(topic=meta.topic, partition=meta.partition, offset=meta.offset)
