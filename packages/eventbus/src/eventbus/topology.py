"""
Broker Topology

Topic and queue names, subscriptions, and setup utilities.

Each producing service publishes to its own topic; the notification worker
consumes one queue per topic. Outbound email notifications go to a separate
topic that email delivery subscribes to.
"""

import logging
from dataclasses import dataclass

from eventbus.broker.base import MessageBroker
from eventbus.contracts.types import EventSource

logger = logging.getLogger(__name__)

# Default names
EXPENSE_EVENTS_TOPIC = "expense-events-topic"
RECEIPT_EVENTS_TOPIC = "receipt-events-topic"
AUTH_EVENTS_TOPIC = "auth-events-topic"
NOTIFICATION_EMAIL_TOPIC = "notification-email-topic"

EXPENSE_EVENTS_QUEUE = "expense-events-queue"
RECEIPT_EVENTS_QUEUE = "receipt-events-queue"
AUTH_EVENTS_QUEUE = "auth-events-queue"


@dataclass(frozen=True)
class SourceRoute:
    """Where one event source publishes and where its events are consumed."""

    source: EventSource
    topic_id: str
    queue_id: str | None = None


def source_routes(settings=None) -> list[SourceRoute]:
    """
    Topic/queue per event source.

    Uses configured names when settings are given, the defaults otherwise.
    """
    if settings is None:
        return [
            SourceRoute(EventSource.EXPENSE, EXPENSE_EVENTS_TOPIC, EXPENSE_EVENTS_QUEUE),
            SourceRoute(EventSource.RECEIPT, RECEIPT_EVENTS_TOPIC, RECEIPT_EVENTS_QUEUE),
            SourceRoute(EventSource.AUTH, AUTH_EVENTS_TOPIC, AUTH_EVENTS_QUEUE),
        ]

    return [
        SourceRoute(EventSource.EXPENSE, settings.EXPENSE_EVENTS_TOPIC, settings.EXPENSE_EVENTS_QUEUE or None),
        SourceRoute(EventSource.RECEIPT, settings.RECEIPT_EVENTS_TOPIC, settings.RECEIPT_EVENTS_QUEUE or None),
        SourceRoute(EventSource.AUTH, settings.AUTH_EVENTS_TOPIC, settings.AUTH_EVENTS_QUEUE or None),
    ]


def topic_for_source(source: EventSource, settings=None) -> str:
    """Topic a given source publishes to."""
    for route in source_routes(settings):
        if route.source == source:
            return route.topic_id
    raise KeyError(f"No topic for event source {source}")


def ensure_topology(
    broker: MessageBroker,
    routes: list[SourceRoute],
    extra_topics: list[str] | None = None,
    extra_queues: list[str] | None = None,
) -> dict[str, int]:
    """
    Create topics, queues and subscriptions. Safe to call multiple times.

    Returns:
        Counts of newly created topics, queues and subscriptions
    """
    created = {"topics": 0, "queues": 0, "subscriptions": 0}

    for topic_id in [r.topic_id for r in routes] + list(extra_topics or []):
        if broker.create_topic(topic_id):
            logger.info(f"Created topic '{topic_id}'")
            created["topics"] += 1

    for queue_id in [r.queue_id for r in routes if r.queue_id] + list(extra_queues or []):
        if broker.create_queue(queue_id):
            logger.info(f"Created queue '{queue_id}'")
            created["queues"] += 1

    for route in routes:
        if route.queue_id and broker.subscribe(route.topic_id, route.queue_id):
            logger.info(f"Subscribed queue '{route.queue_id}' to topic '{route.topic_id}'")
            created["subscriptions"] += 1

    return created
