"""
Queue Poller

Long-polls one queue and hands each message to a handler.

A message is deleted only after the handler succeeded. Anything else
(unparseable body, handler failure) leaves it in the queue; its lease runs
out and it is delivered again. Messages in a batch are processed one after
another and one message's failure never affects the others.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from eventbus.broker.base import BrokerError, MessageBroker, RawMessage
from eventbus.contracts.envelope import EventEnvelope, MalformedMessageError
from eventbus.contracts.wrapper import unwrap_message_body

logger = logging.getLogger(__name__)

EnvelopeHandler = Callable[[EventEnvelope], Any]


class PollerState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    PROCESSING = "processing"
    STOPPED = "stopped"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class PollerConfig:
    """
    Receive parameters.

    max_receive_count > 0 together with dead_letter_queue moves messages
    received more often than that to the dead letter queue. Disabled by
    default: failing messages are redelivered forever.
    """

    batch_size: int = 10
    wait_seconds: int = 20
    lease_seconds: int = 30
    error_backoff_seconds: float = 5.0
    max_receive_count: int = 0
    dead_letter_queue: str | None = None

    @classmethod
    def from_settings(cls, settings) -> "PollerConfig":
        return cls(
            batch_size=settings.POLL_BATCH_SIZE,
            wait_seconds=settings.POLL_WAIT_SECONDS,
            lease_seconds=settings.LEASE_SECONDS,
            error_backoff_seconds=settings.RECEIVE_ERROR_BACKOFF_SECONDS,
            max_receive_count=settings.MAX_RECEIVE_COUNT,
            dead_letter_queue=settings.DEAD_LETTER_QUEUE or None,
        )

    @property
    def dead_letter_enabled(self) -> bool:
        return self.max_receive_count > 0 and bool(self.dead_letter_queue)


class QueuePoller:
    """Receive loop for a single queue."""

    def __init__(
        self,
        broker: MessageBroker,
        queue_id: str,
        handler: EnvelopeHandler,
        stop_event: threading.Event,
        config: PollerConfig | None = None,
    ):
        self.broker = broker
        self.queue_id = queue_id
        self.handler = handler
        self.stop_event = stop_event
        self.config = config or PollerConfig()
        self.state = PollerState.IDLE

    def run(self) -> None:
        """Poll until the stop event is set. Never raises."""
        logger.info(
            f"Starting poller for queue {self.queue_id} "
            f"(batch={self.config.batch_size}, wait={self.config.wait_seconds}s, "
            f"lease={self.config.lease_seconds}s)"
        )

        while not self.stop_event.is_set():
            try:
                self.poll_once()
            except BrokerError as e:
                self.state = PollerState.IDLE
                logger.error(
                    f"Failed to receive from queue {self.queue_id}: {e}",
                    extra={"queue_id": self.queue_id, "error_code": e.code},
                )
                # Returns early when stop is requested during the backoff
                self.stop_event.wait(self.config.error_backoff_seconds)
            except Exception as e:
                self.state = PollerState.IDLE
                logger.error(f"Error in poller for queue {self.queue_id}: {e}", exc_info=True)
                self.stop_event.wait(self.config.error_backoff_seconds)

        self.state = PollerState.STOPPED
        logger.info(f"Poller for queue {self.queue_id} stopped")

    def poll_once(self) -> int:
        """
        Receive one batch and process it.

        Returns:
            Number of messages deleted from the queue

        Raises:
            BrokerError: receive failed
        """
        self.state = PollerState.POLLING
        messages = self.broker.receive(
            self.queue_id,
            max_batch=self.config.batch_size,
            wait_seconds=self.config.wait_seconds,
            lease_seconds=self.config.lease_seconds,
        )

        if not messages:
            self.state = PollerState.IDLE
            return 0

        logger.debug(
            f"Received {len(messages)} messages from queue {self.queue_id}",
            extra={"queue_id": self.queue_id, "count": len(messages)},
        )

        self.state = PollerState.PROCESSING
        deleted = 0
        for message in messages:
            if self.process_message(message):
                deleted += 1

        self.state = PollerState.IDLE
        return deleted

    def process_message(self, message: RawMessage) -> bool:
        """
        Handle one message, deleting it on success.

        Returns:
            True if the message was deleted
        """
        if self.config.dead_letter_enabled and message.receive_count > self.config.max_receive_count:
            return self._dead_letter(message)

        try:
            envelope = unwrap_message_body(message.body)
        except MalformedMessageError as e:
            logger.error(
                f"Failed to parse message from queue {self.queue_id}: {e}",
                extra={"queue_id": self.queue_id, "handle": message.handle},
            )
            return False

        try:
            self.handler(envelope)
        except Exception as e:
            logger.error(
                f"Failed to process {envelope.event_type} message from queue {self.queue_id}: {e}",
                extra={
                    "queue_id": self.queue_id,
                    "event_type": envelope.event_type,
                    "user_id": envelope.subject_user_id,
                    "receive_count": message.receive_count,
                },
                exc_info=True,
            )
            # Not deleted: redelivered when the lease expires
            return False

        return self._delete(message, event_type=envelope.event_type)

    def _delete(self, message: RawMessage, event_type: str | None = None) -> bool:
        try:
            self.broker.delete(self.queue_id, message.handle)
        except BrokerError as e:
            logger.error(
                f"Failed to delete message from queue {self.queue_id}, it will be redelivered: {e}",
                extra={"queue_id": self.queue_id, "handle": message.handle, "event_type": event_type},
            )
            return False

        logger.debug(
            f"Processed message from queue {self.queue_id}",
            extra={"queue_id": self.queue_id, "event_type": event_type},
        )
        return True

    def _dead_letter(self, message: RawMessage) -> bool:
        dlq = self.config.dead_letter_queue
        try:
            self.broker.send(dlq, message.body)
        except BrokerError as e:
            logger.error(
                f"Failed to move message to dead letter queue {dlq}: {e}",
                extra={"queue_id": self.queue_id, "handle": message.handle},
            )
            return False

        logger.warning(
            f"Moved message from queue {self.queue_id} to {dlq} after {message.receive_count} receives",
            extra={"queue_id": self.queue_id, "dead_letter_queue": dlq, "receive_count": message.receive_count},
        )
        return self._delete(message)
