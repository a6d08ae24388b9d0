"""
Pytest configuration for integration tests.

These tests talk to a real Redis (REDIS_URL, default localhost) and are
skipped when it is not reachable.
"""

import os
from uuid import uuid4

import pytest

os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")


@pytest.fixture(scope="module")
def redis_client():
    """Create Redis client for tests."""
    import redis
    client = redis.from_url(os.getenv("REDIS_URL"), decode_responses=True)
    try:
        client.ping()
    except redis.ConnectionError:
        pytest.skip("Redis is not available")
    yield client
    client.close()


@pytest.fixture
def stream_broker(redis_client):
    """Broker on an isolated key prefix, removed after the test."""
    from eventbus.broker import RedisStreamBroker

    prefix = f"test-events-{uuid4().hex[:8]}"
    yield RedisStreamBroker(redis_client, consumer_name="integration-test", key_prefix=prefix)

    keys = list(redis_client.scan_iter(f"{prefix}:*"))
    if keys:
        redis_client.delete(*keys)
