"""
Pytest fixtures for notification worker tests.
"""

import os

import pytest

os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")


@pytest.fixture
def worker_settings():
    """Settings for an in-process worker: stub sender, no health server."""
    from basecore.settings import load_settings
    return load_settings(
        REDIS_URL="redis://localhost:6379/0",
        NOTIFICATION_SENDER="stub",
        EXPENSE_EVENTS_QUEUE="expense-events-queue",
        RECEIPT_EVENTS_QUEUE="",
        AUTH_EVENTS_QUEUE="",
        POLL_WAIT_SECONDS=1,
        HEALTH_PORT=0,
        SHUTDOWN_GRACE_SECONDS=5.0,
    )


@pytest.fixture(autouse=True)
def reset_shutdown():
    from notification_worker import main
    main.shutdown_requested.clear()
    yield
    main.shutdown_requested.clear()
