"""
Pytest fixtures for event bus tests.
"""

import os

import pytest

os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")


@pytest.fixture
def broker():
    """In-memory broker with the expense topic and queue wired up."""
    from eventbus.broker import InMemoryBroker

    broker = InMemoryBroker()
    broker.create_topic("expense-events-topic")
    broker.create_queue("expense-events-queue")
    broker.subscribe("expense-events-topic", "expense-events-queue")
    return broker


@pytest.fixture
def expense_envelope():
    """Sample expense.created envelope."""
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
