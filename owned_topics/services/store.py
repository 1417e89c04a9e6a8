# owned_topics/services/store.py
import threading
import uuid
from typing import Dict, List, Optional, Protocol

from owned_topics.domain.models.topic import TopicRecord


class TopicStore(Protocol):
    """Persistence backend for topic ownership records."""

    def save(self, record: TopicRecord) -> TopicRecord: ...

    def find_all_by_owner(self, owner_id: str) -> List[TopicRecord]: ...

    def find_one(self, *, id: str, owner_id: str) -> Optional[TopicRecord]: ...


class InMemoryTopicStore:
    """
    In-memory topic records keyed by store-assigned id.
    Thread-safe for simple get/put operations.

    Records come back in insertion order. Nothing survives a restart; swap in
    a document-database backed `TopicStore` for durable deployments.
    """

    def __init__(self) -> None:
        self._data: Dict[str, TopicRecord] = {}
        self._lock = threading.RLock()

    def save(self, record: TopicRecord) -> TopicRecord:
        """
        Persist *record*, assigning an id when it has none, and return the
        stored copy.
        """
        with self._lock:
            if record.id is None:
                record = record.model_copy(update={"id": uuid.uuid4().hex})
            self._data[record.id] = record
            return record

    def find_all_by_owner(self, owner_id: str) -> List[TopicRecord]:
        with self._lock:
            return [r for r in self._data.values() if r.owner_id == owner_id]

    def find_one(self, *, id: str, owner_id: str) -> Optional[TopicRecord]:
        # Both keys are matched together; an id owned by someone else is
        # indistinguishable from a missing one.
        with self._lock:
            record = self._data.get(id)
            if record is None or record.owner_id != owner_id:
                return None
            return record
