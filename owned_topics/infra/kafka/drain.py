# owned_topics/infra/kafka/drain.py
"""
Time-boxed snapshot reads of a topic's full history.

A `DrainController` runs one consumer-group session per call:

    IDLE -> CONNECTING -> SUBSCRIBED -> DRAINING -> TERMINATED

A worker thread owns the `KafkaConsumer` (kafka-python consumers are not
thread-safe) and pushes every record into a bounded channel. The calling
thread pulls from the channel until the drain window elapses, then stops the
worker, which closes the consumer. TERMINATED is reached from every state and
the consumer is always closed on the way there.

Each session joins a group of its own (the configured group id plus a random
suffix), so concurrent drains never rebalance one another.

The result is best-effort: a topic holding more than the window can deliver
comes back partial, and each call replays from the earliest offset since no
offsets are ever committed.
"""
from __future__ import annotations

import enum
import logging
import queue
import threading
import time
import uuid
from typing import Callable, Dict, List, Optional

from kafka import ConsumerRebalanceListener, KafkaConsumer, TopicPartition
from kafka.errors import KafkaError

from owned_topics.core.config import BrokerConfig
from owned_topics.core.exceptions import BrokerUnavailableError
from owned_topics.domain.models.topic import Message

logger = logging.getLogger(__name__)

ConsumerFactory = Callable[..., KafkaConsumer]

_CLOSED = object()  # worker died; nothing more will arrive


class DrainState(str, enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    DRAINING = "draining"
    TERMINATED = "terminated"


class _RewindOnce(ConsumerRebalanceListener):
    """Rewind each partition to its earliest offset the first time it is assigned.

    A partition handed back after a rebalance resumes from where this session
    left it instead of replaying its history a second time.
    """

    def __init__(self, consumer: KafkaConsumer) -> None:
        self.consumer = consumer
        self.positions: Dict[TopicPartition, int] = {}

    def on_partitions_revoked(self, revoked):
        for tp in revoked or ():
            self.positions[tp] = self.consumer.position(tp)

    def on_partitions_assigned(self, assigned):
        fresh = []
        for tp in assigned or ():
            if tp in self.positions:
                self.consumer.seek(tp, self.positions[tp])
            else:
                fresh.append(tp)
        if fresh:
            self.consumer.seek_to_beginning(*fresh)


def _decode(b) -> Optional[str]:
    if isinstance(b, (bytes, bytearray)):
        return b.decode("utf-8", "replace")
    return b


class DrainController:
    """Single-use session that collects a topic's messages for a fixed window."""

    def __init__(
        self,
        config: BrokerConfig,
        consumer_factory: ConsumerFactory = KafkaConsumer,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._consumer_factory = consumer_factory
        self._clock = clock
        self._channel: "queue.Queue[object]" = queue.Queue(maxsize=config.drain_buffer_size)
        self._stop = threading.Event()
        self._error: BaseException | None = None
        self.state = DrainState.IDLE

    # ------------------------------------------------------------------ #
    # caller side                                                         #
    # ------------------------------------------------------------------ #
    def drain(self, topic: str) -> List[Message]:
        """Collect messages from *topic* for the configured window.

        Always waits the full window unless the session fails, in which case
        `BrokerUnavailableError` is raised once the consumer has been closed.
        """
        if self.state is not DrainState.IDLE:
            raise RuntimeError("DrainController instances are single-use")

        window = self._config.drain_window_sec
        started = self._clock()
        deadline = started + window
        worker = threading.Thread(
            target=self._consume, args=(topic,), name=f"drain-{topic}", daemon=True
        )
        self.state = DrainState.CONNECTING
        worker.start()

        collected: List[Message] = []
        try:
            while True:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    break
                try:
                    item = self._channel.get(timeout=remaining)
                except queue.Empty:
                    continue
                if item is _CLOSED:
                    break
                collected.append(item)
        finally:
            self._stop.set()
            worker.join()
            self.state = DrainState.TERMINATED

        if self._error is not None:
            if isinstance(self._error, (KafkaError, OSError)):
                logger.warning("Drain of %s failed: %s", topic, self._error)
                raise BrokerUnavailableError(f"drain {topic} failed: {self._error}") from self._error
            raise self._error

        # Anything buffered before the worker stopped was delivered in-window.
        while True:
            try:
                item = self._channel.get_nowait()
            except queue.Empty:
                break
            if item is not _CLOSED:
                collected.append(item)

        logger.info(
            "Drained %d message(s) from %s in %.2fs", len(collected), topic, self._clock() - started
        )
        return collected

    # ------------------------------------------------------------------ #
    # worker side                                                         #
    # ------------------------------------------------------------------ #
    def _consume(self, topic: str) -> None:
        consumer: KafkaConsumer | None = None
        try:
            consumer = self._consumer_factory(
                **self._config.common_kwargs(),
                group_id=f"{self._config.consumer_group_id}-{uuid.uuid4().hex}",
                auto_offset_reset="earliest",
                enable_auto_commit=False,
            )
            consumer.subscribe([topic], listener=_RewindOnce(consumer))
            self.state = DrainState.SUBSCRIBED

            while not self._stop.is_set():
                batch = consumer.poll(timeout_ms=self._config.drain_poll_timeout_ms)
                self.state = DrainState.DRAINING
                for _tp, records in batch.items():
                    for r in records:
                        if not self._offer(Message(key=_decode(r.key), value=_decode(r.value))):
                            return
        except Exception as exc:  # handed to the caller thread
            self._error = exc
            self._offer(_CLOSED)
        finally:
            if consumer is not None:
                consumer.close(autocommit=False)

    def _offer(self, item: object) -> bool:
        """Block until *item* fits in the channel; False once stopped."""
        while not self._stop.is_set():
            try:
                self._channel.put(item, timeout=0.05)
                return True
            except queue.Full:
                continue
        return False
