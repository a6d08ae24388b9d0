"""
In-Memory Broker

Development broker that keeps topics and queues in process memory.
Implements the same lease semantics as the Redis broker: a received message
becomes visible again once its lease expires unless it was deleted.

Useful for local development and testing. Not shared between processes.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable
from uuid import uuid4

from eventbus.broker.base import BrokerError, MessageBroker, QueueStats, RawMessage
from eventbus.contracts.wrapper import build_notification

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    body: str
    visible_at: float = 0.0
    receive_count: int = 0


class InMemoryBroker(MessageBroker):
    """
    In-memory broker for development and testing.

    - Publishing to an unknown topic or sending to an unknown queue fails
    - Receive blocks (up to wait_seconds) until a message is visible
    - Every published or received message is recorded for inspection
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._cond = threading.Condition()
        self._topics: dict[str, set[str]] = {}
        self._queues: dict[str, OrderedDict[str, _Entry]] = {}
        self.published: list[dict[str, str | None]] = []

    def publish(self, topic_id: str, subject: str | None, body: str) -> str:
        with self._cond:
            if topic_id not in self._topics:
                raise BrokerError(f"Topic {topic_id} does not exist", code="NotFound", retryable=False)

            message_id = str(uuid4())
            notification = build_notification(topic_id, subject, body, message_id=message_id)
            for queue_id in sorted(self._topics[topic_id]):
                self._enqueue(queue_id, notification)

            self.published.append({"topic_id": topic_id, "subject": subject, "body": body})
            self._cond.notify_all()

        logger.debug(f"[MEMORY] Published to topic {topic_id}", extra={"subject": subject})
        return message_id

    def send(self, queue_id: str, body: str) -> str:
        with self._cond:
            if queue_id not in self._queues:
                raise BrokerError(f"Queue {queue_id} does not exist", code="NotFound", retryable=False)
            handle = self._enqueue(queue_id, body)
            self._cond.notify_all()
        return handle

    def _enqueue(self, queue_id: str, body: str) -> str:
        handle = uuid4().hex
        self._queues[queue_id][handle] = _Entry(body=body)
        return handle

    def receive(
        self,
        queue_id: str,
        max_batch: int = 10,
        wait_seconds: int = 20,
        lease_seconds: int = 30,
    ) -> list[RawMessage]:
        deadline = self._clock() + wait_seconds

        with self._cond:
            if queue_id not in self._queues:
                raise BrokerError(f"Queue {queue_id} does not exist", code="NotFound")

            while True:
                now = self._clock()
                messages = []
                for handle, entry in self._queues[queue_id].items():
                    if len(messages) >= max_batch:
                        break
                    if entry.visible_at <= now:
                        entry.visible_at = now + lease_seconds
                        entry.receive_count += 1
                        messages.append(
                            RawMessage(body=entry.body, handle=handle, receive_count=entry.receive_count)
                        )

                remaining = deadline - now
                if messages or remaining <= 0:
                    return messages

                # Wake up early if a leased message becomes visible again
                next_visible = min(
                    (e.visible_at for e in self._queues[queue_id].values()),
                    default=deadline,
                )
                self._cond.wait(timeout=max(0.0, min(remaining, next_visible - now)) or 0.01)

    def delete(self, queue_id: str, handle: str) -> None:
        with self._cond:
            if queue_id not in self._queues:
                raise BrokerError(f"Queue {queue_id} does not exist", code="NotFound")
            self._queues[queue_id].pop(handle, None)

    def create_topic(self, topic_id: str) -> bool:
        with self._cond:
            if topic_id in self._topics:
                return False
            self._topics[topic_id] = set()
            return True

    def create_queue(self, queue_id: str) -> bool:
        with self._cond:
            if queue_id in self._queues:
                return False
            self._queues[queue_id] = OrderedDict()
            return True

    def subscribe(self, topic_id: str, queue_id: str) -> bool:
        with self._cond:
            if topic_id not in self._topics:
                raise BrokerError(f"Topic {topic_id} does not exist", code="NotFound", retryable=False)
            if queue_id in self._topics[topic_id]:
                return False
            self._topics[topic_id].add(queue_id)
            return True

    def queue_stats(self, queue_id: str) -> QueueStats:
        with self._cond:
            entries = self._queues.get(queue_id, OrderedDict())
            now = self._clock()
            in_flight = sum(1 for e in entries.values() if e.visible_at > now)
            return QueueStats(queue_id=queue_id, length=len(entries), in_flight=in_flight)

    def bodies(self, queue_id: str) -> list[str]:
        """Bodies of all messages still in a queue (visible or leased)."""
        with self._cond:
            return [entry.body for entry in self._queues.get(queue_id, {}).values()]
