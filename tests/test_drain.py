import time

import pytest
from kafka.errors import KafkaError

from owned_topics.core.config import BrokerConfig
from owned_topics.core.exceptions import BrokerUnavailableError
from owned_topics.domain.models.topic import Message
from owned_topics.infra.kafka.drain import DrainController, DrainState


def _seed(broker, topic, pairs):
    broker.topics[topic] = [(k, v) for k, v in pairs]


def test_drain_replays_history_in_order(broker, broker_config):
    _seed(broker, "u1-orders", [(b"k1", b"m1"), (b"k2", b"m2"), (None, b"m3")])
    controller = DrainController(broker_config, broker.consumer_factory)

    messages = controller.drain("u1-orders")

    assert messages == [
        Message(key="k1", value="m1"),
        Message(key="k2", value="m2"),
        Message(key=None, value="m3"),
    ]
    assert controller.state is DrainState.TERMINATED


def test_drain_rewinds_assigned_partitions_and_never_commits(broker, broker_config):
    _seed(broker, "u1-orders", [(b"k", b"v")])
    DrainController(broker_config, broker.consumer_factory).drain("u1-orders")

    consumer = broker.consumers[0]
    assert consumer.rewound and consumer.rewound[0].topic == "u1-orders"
    assert consumer.config["auto_offset_reset"] == "earliest"
    assert consumer.config["enable_auto_commit"] is False
    assert consumer.config["group_id"].startswith(f"{broker_config.consumer_group_id}-")
    assert consumer.close_calls == [False]


def test_repeated_drains_redeliver(broker, broker_config):
    _seed(broker, "u1-orders", [(b"k", b"v")])
    first = DrainController(broker_config, broker.consumer_factory).drain("u1-orders")
    second = DrainController(broker_config, broker.consumer_factory).drain("u1-orders")
    assert first == second == [Message(key="k", value="v")]


def test_empty_topic_waits_out_the_full_window(broker, broker_config):
    _seed(broker, "u1-empty", [])
    start = time.monotonic()
    messages = DrainController(broker_config, broker.consumer_factory).drain("u1-empty")
    elapsed = time.monotonic() - start

    assert messages == []
    assert elapsed >= broker_config.drain_window_sec
    assert broker.opened == broker.closed == 1


def test_more_messages_than_buffer_are_still_collected(broker, broker_config):
    pairs = [(None, f"m{i}".encode()) for i in range(broker_config.drain_buffer_size * 3)]
    _seed(broker, "u1-big", pairs)
    messages = DrainController(broker_config, broker.consumer_factory).drain("u1-big")
    assert [m.value for m in messages] == [v.decode() for _, v in pairs]


def test_invalid_utf8_is_replaced(broker, broker_config):
    _seed(broker, "u1-bin", [(None, b"\xff\xfe")])
    (msg,) = DrainController(broker_config, broker.consumer_factory).drain("u1-bin")
    assert msg.key is None
    assert "�" in msg.value


def test_connect_failure_raises_broker_unavailable(broker, broker_config):
    broker.available = False
    controller = DrainController(broker_config, broker.consumer_factory)
    with pytest.raises(BrokerUnavailableError):
        controller.drain("u1-orders")
    assert controller.state is DrainState.TERMINATED


def test_poll_failure_closes_consumer_and_fails_fast(broker, broker_config):
    _seed(broker, "u1-orders", [])

    def failing_factory(**kwargs):
        consumer = broker.consumer_factory(**kwargs)

        def poll(timeout_ms=0):
            raise KafkaError("connection reset")

        consumer.poll = poll
        return consumer

    slow_config = BrokerConfig(drain_window_sec=5.0, drain_poll_timeout_ms=20)
    start = time.monotonic()
    with pytest.raises(BrokerUnavailableError):
        DrainController(slow_config, failing_factory).drain("u1-orders")

    assert time.monotonic() - start < 5.0
    assert broker.opened == broker.closed == 1


def test_controller_is_single_use(broker, broker_config):
    _seed(broker, "u1-orders", [])
    controller = DrainController(broker_config, broker.consumer_factory)
    controller.drain("u1-orders")
    with pytest.raises(RuntimeError):
        controller.drain("u1-orders")


def test_rebalance_mid_window_does_not_replay_history(broker, broker_config):
    _seed(broker, "u1-orders", [(b"k1", b"m1"), (b"k2", b"m2"), (b"k3", b"m3")])

    def rebalancing_factory(**kwargs):
        consumer = broker.consumer_factory(**kwargs)
        consumer.rebalance_on_poll = 3
        return consumer

    messages = DrainController(broker_config, rebalancing_factory).drain("u1-orders")

    assert broker.consumers[0].polls >= 3
    assert [m.value for m in messages] == ["m1", "m2", "m3"]


def test_each_session_joins_its_own_group(broker, broker_config):
    _seed(broker, "u1-orders", [])
    DrainController(broker_config, broker.consumer_factory).drain("u1-orders")
    DrainController(broker_config, broker.consumer_factory).drain("u1-orders")

    first, second = (c.config["group_id"] for c in broker.consumers)
    assert first != second
