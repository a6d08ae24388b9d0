"""
Pytest fixtures for notification tests.
"""

import os

import pytest

os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")


@pytest.fixture
def renderer():
    from notifications.renderer import Jinja2TemplateRenderer
    return Jinja2TemplateRenderer()


@pytest.fixture
def sender():
    from notifications.senders import StubSender
    return StubSender()


@pytest.fixture
def dispatcher(renderer, sender):
    from notifications.dispatcher import NotificationDispatcher
    return NotificationDispatcher(renderer, sender)


@pytest.fixture
def queue_broker():
    """In-memory broker with one queue."""
    from eventbus.broker import InMemoryBroker

    broker = InMemoryBroker()
    broker.create_queue("expense-events-queue")
    return broker


@pytest.fixture
def expense_created():
    from eventbus import events
    return events.expense_created(
        user_id="u-1",
        user_email="ana@example.com",
        expense_id="exp-9",
        amount="42.50",
        description="Team lunch",
        category="Food",
        expense_date="2024-03-15",
    )
