"""
Message Broker Base

Abstract interface for the publish/subscribe broker.
Implementations: Redis Streams (production), in-memory (development, tests).

Model:
- A topic fans each published message out to every subscribed queue,
  wrapped in a Notification (see eventbus.contracts.wrapper).
- A queue hands out messages with a lease. A received message stays
  invisible to other receivers until the lease expires or it is deleted.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


class BrokerError(Exception):
    """Transport or infrastructure error from the broker."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = True,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.retryable = retryable


@dataclass(frozen=True)
class RawMessage:
    """
    A message received from a queue.

    Attributes:
        body: Message body (wrapped notification or direct envelope JSON)
        handle: Opaque handle used to delete the message
        receive_count: How many times the message has been received,
            including this delivery
    """

    body: str
    handle: str
    receive_count: int = 1


@dataclass(frozen=True)
class QueueStats:
    """Point-in-time queue counters."""

    queue_id: str
    length: int
    in_flight: int


class MessageBroker(ABC):
    """
    Abstract interface for brokers.

    Implementations must be safe to share between threads: one instance
    serves every poller and publisher in a process.
    """

    @abstractmethod
    def publish(self, topic_id: str, subject: str | None, body: str) -> str:
        """
        Publish a message to a topic.

        Args:
            topic_id: Destination topic
            subject: Subject line (the event type for domain events)
            body: Message body

        Returns:
            Broker-assigned message ID

        Raises:
            BrokerError: on transport failure or unknown topic
        """
        ...

    @abstractmethod
    def send(self, queue_id: str, body: str) -> str:
        """
        Enqueue a message directly, bypassing topics.

        Returns:
            Broker-assigned message ID
        """
        ...

    @abstractmethod
    def receive(
        self,
        queue_id: str,
        max_batch: int = 10,
        wait_seconds: int = 20,
        lease_seconds: int = 30,
    ) -> list[RawMessage]:
        """
        Long-poll a queue for messages.

        Args:
            queue_id: Queue to receive from
            max_batch: Maximum messages to return
            wait_seconds: How long to wait when the queue is empty
            lease_seconds: How long received messages stay invisible

        Returns:
            Up to max_batch messages (empty if none arrived in time)
        """
        ...

    @abstractmethod
    def delete(self, queue_id: str, handle: str) -> None:
        """Delete (acknowledge) a received message."""
        ...

    @abstractmethod
    def create_topic(self, topic_id: str) -> bool:
        """Create a topic. Returns False if it already existed."""
        ...

    @abstractmethod
    def create_queue(self, queue_id: str) -> bool:
        """Create a queue. Returns False if it already existed."""
        ...

    @abstractmethod
    def subscribe(self, topic_id: str, queue_id: str) -> bool:
        """Subscribe a queue to a topic. Returns False if already subscribed."""
        ...

    @abstractmethod
    def queue_stats(self, queue_id: str) -> QueueStats:
        """Get queue length and in-flight (received, not deleted) count."""
        ...

    def ping(self) -> None:
        """Check connectivity. Raises BrokerError when unreachable."""
        return None
