import time
from functools import partial
from types import SimpleNamespace

import pytest
from kafka import TopicPartition
from kafka.errors import NoBrokersAvailable, TopicAlreadyExistsError

from owned_topics.core.config import BrokerConfig
from owned_topics.domain.services.topic_service import TopicService
from owned_topics.infra.kafka.admin import KafkaAdminFacade
from owned_topics.infra.kafka.drain import DrainController
from owned_topics.infra.kafka.producer import KafkaPublisher
from owned_topics.services.store import InMemoryTopicStore


class FakeBroker:
    """Single-partition topics held in memory, plus connection bookkeeping."""

    def __init__(self):
        self.topics: dict[str, list[tuple]] = {}
        self.available = True
        self.opened = 0
        self.closed = 0
        self.consumers: list["_FakeConsumer"] = []

    def _connect(self):
        if not self.available:
            raise NoBrokersAvailable()
        self.opened += 1

    def admin_factory(self, **kwargs):
        self._connect()
        return _FakeAdmin(self)

    def consumer_factory(self, **kwargs):
        self._connect()
        consumer = _FakeConsumer(self, **kwargs)
        self.consumers.append(consumer)
        return consumer

    def producer_factory(self, **kwargs):
        self._connect()
        return _FakeProducer(self, **kwargs)

    def append(self, topic, key, value):
        self.topics[topic].append((key, value))


class _FakeAdmin:
    def __init__(self, broker):
        self.broker = broker

    def create_topics(self, new_topics, validate_only=False):
        for t in new_topics:
            if t.name in self.broker.topics:
                raise TopicAlreadyExistsError(t.name)
            self.broker.topics[t.name] = []

    def close(self):
        self.broker.closed += 1


class _FakeConsumer:
    def __init__(self, broker, **kwargs):
        self.broker = broker
        self.config = kwargs
        self.topic = None
        self.listener = None
        self.offset = None
        self.rewound = []
        self.close_calls = []
        self.polls = 0
        self.rebalance_on_poll = None  # poll number at which a peer joins

    def subscribe(self, topics, listener=None):
        self.topic = topics[0]
        self.listener = listener

    def seek_to_beginning(self, *partitions):
        self.rewound.extend(partitions)
        self.offset = 0

    def seek(self, partition, offset):
        self.offset = offset

    def position(self, partition):
        return self.offset

    def poll(self, timeout_ms=0):
        self.polls += 1
        tp = TopicPartition(self.topic, 0)
        if self.offset is None:
            # first poll joins the group and gets partition 0
            self.offset = 10_000  # would skip history without a rewind
            self.listener.on_partitions_assigned([tp])
        elif self.polls == self.rebalance_on_poll:
            self.listener.on_partitions_revoked([tp])
            # nothing committed, so the group resets to earliest
            self.offset = 0
            self.listener.on_partitions_assigned([tp])
        log = self.broker.topics.get(self.topic, [])
        pending = log[self.offset:]
        if not pending:
            time.sleep(timeout_ms / 1000)
            return {}
        self.offset = len(log)
        records = [SimpleNamespace(key=k, value=v) for k, v in pending]
        return {tp: records}

    def close(self, autocommit=True):
        self.close_calls.append(autocommit)
        self.broker.closed += 1


class _FakeProducer:
    def __init__(self, broker, key_serializer=None, value_serializer=None, **kwargs):
        self.broker = broker
        self.key_serializer = key_serializer
        self.value_serializer = value_serializer

    def send(self, topic, key=None, value=None):
        self.broker.append(topic, self.key_serializer(key), self.value_serializer(value))
        offset = len(self.broker.topics[topic]) - 1
        meta = SimpleNamespace(topic=topic, partition=0, offset=offset)
        return SimpleNamespace(get=lambda timeout=None: meta)

    def flush(self):
        pass

    def close(self):
        self.broker.closed += 1


@pytest.fixture
def broker():
    return FakeBroker()


@pytest.fixture
def broker_config():
    return BrokerConfig(drain_window_sec=0.2, drain_poll_timeout_ms=20, drain_buffer_size=16)


@pytest.fixture
def store():
    return InMemoryTopicStore()


@pytest.fixture
def service(broker, broker_config, store):
    return TopicService(
        admin=KafkaAdminFacade(broker_config, admin_factory=broker.admin_factory),
        store=store,
        drain_factory=partial(DrainController, broker_config, broker.consumer_factory),
        publisher=KafkaPublisher(broker_config, producer_factory=broker.producer_factory),
    )
