"""Kafka Admin façade built on kafka-python."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator

from kafka.admin import KafkaAdminClient, NewTopic  # kafka-python
from kafka.errors import InvalidTopicError, KafkaError, TopicAlreadyExistsError, for_code

from owned_topics.core.config import BrokerConfig
from owned_topics.core.exceptions import BrokerUnavailableError, TopicConflictError

logger = logging.getLogger(__name__)

AdminFactory = Callable[..., KafkaAdminClient]


class KafkaAdminFacade:
    """Creates topics over a short-lived admin connection.

    Every call opens its own `KafkaAdminClient` and closes it before
    returning, whatever the outcome. Failures are reported, never retried.
    """

    def __init__(self, config: BrokerConfig, admin_factory: AdminFactory = KafkaAdminClient) -> None:
        self._config = config
        self._admin_factory = admin_factory

    @contextmanager
    def _session(self) -> Iterator[KafkaAdminClient]:
        try:
            client = self._admin_factory(**self._config.common_kwargs())
        except (KafkaError, OSError) as exc:
            raise BrokerUnavailableError(f"cannot connect to admin endpoint: {exc}") from exc
        try:
            yield client
        finally:
            client.close()

    # ---------- Topic CRUD -------------------------------------------------

    def create_topic(self, name: str) -> None:
        """Create *name* with the configured partition count and replication.

        Raises
        ------
        TopicConflictError
            The broker already hosts *name*, or a topic its name collides with.
        BrokerUnavailableError
            The admin connection failed or the broker rejected the request.
        """
        new_topic = NewTopic(
            name=name,
            num_partitions=self._config.topic_partitions,
            replication_factor=self._config.topic_replication_factor,
        )
        with self._session() as client:
            try:
                response = client.create_topics([new_topic])
                _raise_topic_errors(response)
            except TopicAlreadyExistsError as exc:
                logger.info("Topic %s already exists at the broker", name)
                raise TopicConflictError(f"topic {name} already exists") from exc
            except InvalidTopicError as exc:
                # Names are validated before they get here; the broker still
                # refuses one that collides with an existing topic.
                logger.info("Broker rejected topic name %s: %s", name, exc)
                raise TopicConflictError(f"topic {name} collides with an existing topic") from exc
            except (KafkaError, OSError) as exc:
                logger.warning("Creating topic %s failed: %s", name, exc)
                raise BrokerUnavailableError(f"create topic {name} failed: {exc}") from exc
        logger.info(
            "Created topic %s (partitions=%d, replication=%d)",
            name, new_topic.num_partitions, new_topic.replication_factor,
        )


def _raise_topic_errors(response) -> None:
    """Raise the first per-topic error carried in a CreateTopics response.

    Older kafka-python releases return the response instead of raising, so
    error codes have to be inspected here.
    """
    for entry in getattr(response, "topic_errors", None) or ():
        code = entry[1]
        if code:
            message = entry[2] if len(entry) > 2 else None
            raise for_code(code)(message or entry[0])
