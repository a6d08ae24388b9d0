"""
Event Publisher

Used by producing services to hand domain events to their topic.

- publish(): synchronous, returns once the broker acknowledged, never retries
- publish_async(): fire-and-forget on the publisher's own thread pool

The async variant is NOT tied to the caller. The pool lives as long as the
publisher (the process), so a request that ends or gets cancelled right
after calling publish_async() does not abort the publish. Keep it that way:
submitting to anything scoped to the request, such as its event loop,
reintroduces cancellation of in-flight notification sends.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

from eventbus.broker.base import MessageBroker
from eventbus.contracts.envelope import EventEnvelope
from eventbus.contracts.types import EventSource
from eventbus.topology import topic_for_source

logger = logging.getLogger(__name__)


class EventPublisher:
    """
    Publishes event envelopes to one topic.

    One publisher per producing service, created at startup and shared by
    all requests.
    """

    def __init__(
        self,
        broker: MessageBroker,
        topic_id: str,
        max_workers: int = 4,
    ):
        self.broker = broker
        self.topic_id = topic_id
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix=f"publish-{topic_id}",
        )

    def publish(self, envelope: EventEnvelope) -> str:
        """
        Publish an envelope and wait for the broker.

        Exactly one broker publish per call; the subject is the event type.

        Returns:
            Broker message ID

        Raises:
            EventSerializationError: payload is not JSON-serializable
            BrokerError: transport, credentials or unknown topic
        """
        body = envelope.to_json()
        message_id = self.broker.publish(self.topic_id, envelope.event_type, body)

        logger.info(
            f"Published event {envelope.event_type} to topic {self.topic_id}",
            extra={
                "event_type": envelope.event_type,
                "user_id": envelope.subject_user_id,
                "topic_id": self.topic_id,
                "message_id": message_id,
            },
        )
        return message_id

    def publish_async(self, envelope: EventEnvelope) -> None:
        """
        Publish in the background and return immediately.

        There is no result channel: failures are only logged. A lost
        publish is not retried.
        """
        logger.debug(
            f"Publishing event {envelope.event_type} for user {envelope.subject_user_id}",
            extra={"event_type": envelope.event_type, "user_email": envelope.subject_user_email},
        )
        try:
            self._executor.submit(self._publish_detached, envelope)
        except RuntimeError as e:
            # Executor already shut down (process is exiting)
            logger.error(
                f"Dropped event {envelope.event_type}: publisher is shut down",
                extra={"event_type": envelope.event_type, "error": str(e)},
            )

    def _publish_detached(self, envelope: EventEnvelope) -> None:
        try:
            self.publish(envelope)
        except Exception as e:
            logger.error(
                f"Failed to publish event {envelope.event_type}: {e}",
                extra={
                    "event_type": envelope.event_type,
                    "user_id": envelope.subject_user_id,
                    "topic_id": self.topic_id,
                },
                exc_info=True,
            )

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting async publishes; optionally wait for in-flight ones."""
        self._executor.shutdown(wait=wait)


def emit_event(publisher: EventPublisher | None, envelope: EventEnvelope) -> None:
    """
    Emit an event from a producing service.

    Call only after the state change it describes was committed. Services
    run without a publisher when their topic is not configured; the event
    is then dropped with a warning.
    """
    if publisher is None:
        logger.warning(
            f"Event publisher not configured - {envelope.event_type} event will not be published",
            extra={"event_type": envelope.event_type},
        )
        return
    publisher.publish_async(envelope)


def publisher_for_source(broker: MessageBroker, source: EventSource, settings) -> EventPublisher:
    """Build the publisher a producing service uses for its topic."""
    return EventPublisher(
        broker,
        topic_for_source(source, settings),
        max_workers=settings.PUBLISH_MAX_WORKERS,
    )
