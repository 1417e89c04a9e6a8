"""Use-case coordination for owner-scoped topics."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from owned_topics.core.exceptions import TopicNotFoundError
from owned_topics.domain import naming
from owned_topics.domain.models.topic import PublishResult, TopicMessages, TopicRecord
from owned_topics.infra.kafka.admin import KafkaAdminFacade
from owned_topics.infra.kafka.drain import DrainController
from owned_topics.infra.kafka.producer import KafkaPublisher
from owned_topics.services.store import TopicStore

logger = logging.getLogger(__name__)


class TopicService:
    """Stateless wrapper combining broker calls, the record store and ownership rules.

    Parameters
    ----------
    admin : KafkaAdminFacade
        Creates topics at the broker.
    store : TopicStore
        Owns the topic records; nothing is cached here between calls.
    drain_factory : Callable[[], DrainController]
        Builds a fresh drain session for every retrieval.
    publisher : KafkaPublisher | None
        Appends messages to owned topics; publishing is disabled without one.
    """

    def __init__(
        self,
        admin: KafkaAdminFacade,
        store: TopicStore,
        drain_factory: Callable[[], DrainController],
        publisher: Optional[KafkaPublisher] = None,
    ) -> None:
        self._admin = admin
        self._store = store
        self._drain_factory = drain_factory
        self._publisher = publisher

    # ------------------------------------------------------------------ #
    # Queries                                                             #
    # ------------------------------------------------------------------ #
    def list(self, owner_id: str) -> List[TopicRecord]:
        """Return every record owned by *owner_id*, in store order."""
        return self._store.find_all_by_owner(owner_id)

    def get_with_messages(self, owner_id: str, record_id: str) -> TopicMessages:
        """Drain the topic behind *record_id* if *owner_id* owns it."""
        record = self._owned(owner_id, record_id)
        messages = self._drain_factory().drain(record.name)
        return TopicMessages(topic=record.name, messages=messages)

    # ------------------------------------------------------------------ #
    # Commands                                                            #
    # ------------------------------------------------------------------ #
    def create(self, owner_id: str, short_name: str) -> TopicRecord:
        """Create the broker topic, then persist its ownership record.

        A broker conflict or failure propagates before anything is written.
        """
        name = naming.resolve(owner_id, short_name)
        self._admin.create_topic(name)
        try:
            record = self._store.save(
                TopicRecord(name=name, owner_id=owner_id, short_name=short_name)
            )
        except Exception:
            logger.error("Topic %s exists at the broker but its record was not saved", name)
            raise
        logger.info("Owner %s created topic %s (id=%s)", owner_id, name, record.id)
        return record

    def publish(self, owner_id: str, record_id: str, key: Optional[str], value: str) -> PublishResult:
        """Append one message to a topic owned by *owner_id*."""
        if self._publisher is None:
            raise RuntimeError("TopicService was built without a publisher")
        record = self._owned(owner_id, record_id)
        return self._publisher.publish(record.name, key, value)

    # ------------------------------------------------------------------ #
    # Helpers                                                             #
    # ------------------------------------------------------------------ #
    def _owned(self, owner_id: str, record_id: str) -> TopicRecord:
        record = self._store.find_one(id=record_id, owner_id=owner_id)
        if record is None:
            raise TopicNotFoundError(f"topic {record_id} not found")
        return record
