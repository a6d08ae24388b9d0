"""
Tests for topic/queue topology.
"""

from unittest.mock import MagicMock

import pytest

from eventbus.broker import InMemoryBroker
from eventbus.contracts.types import EventSource
from eventbus.topology import (
    NOTIFICATION_EMAIL_TOPIC,
    SourceRoute,
    ensure_topology,
    source_routes,
    topic_for_source,
)


class TestTopology:
    """Tests for route resolution and setup."""

    def test_default_routes(self):
        routes = {r.source: r for r in source_routes()}
        assert routes[EventSource.EXPENSE].topic_id == "expense-events-topic"
        assert routes[EventSource.AUTH].queue_id == "auth-events-queue"

    def test_routes_from_settings(self):
        """Test that empty queue names disable the consumer."""
        settings = MagicMock(
            EXPENSE_EVENTS_TOPIC="e-topic",
            RECEIPT_EVENTS_TOPIC="r-topic",
            AUTH_EVENTS_TOPIC="a-topic",
            EXPENSE_EVENTS_QUEUE="e-queue",
            RECEIPT_EVENTS_QUEUE="",
            AUTH_EVENTS_QUEUE=None,
        )
        routes = {r.source: r for r in source_routes(settings)}
        assert routes[EventSource.EXPENSE].queue_id == "e-queue"
        assert routes[EventSource.RECEIPT].queue_id is None
        assert routes[EventSource.AUTH].queue_id is None
        assert topic_for_source(EventSource.AUTH, settings) == "a-topic"

    def test_topic_for_unknown_source(self):
        with pytest.raises(KeyError):
            topic_for_source("billing")

    def test_ensure_topology_is_idempotent(self):
        """Test that a second run creates nothing."""
        broker = InMemoryBroker()
        routes = source_routes()

        first = ensure_topology(broker, routes, extra_topics=[NOTIFICATION_EMAIL_TOPIC])
        second = ensure_topology(broker, routes, extra_topics=[NOTIFICATION_EMAIL_TOPIC])

        assert first == {"topics": 4, "queues": 3, "subscriptions": 3}
        assert second == {"topics": 0, "queues": 0, "subscriptions": 0}

    def test_published_events_reach_the_queue(self):
        """Test that the created subscriptions deliver to the source queue."""
        broker = InMemoryBroker()
        ensure_topology(broker, [SourceRoute(EventSource.AUTH, "a-topic", "a-queue")])

        broker.publish("a-topic", "user.registered", "{}")
        assert len(broker.bodies("a-queue")) == 1
