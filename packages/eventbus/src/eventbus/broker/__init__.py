"""
Message brokers.

RedisStreamBroker is the production broker; InMemoryBroker serves local
development and tests.
"""

from eventbus.broker.base import BrokerError, MessageBroker, QueueStats, RawMessage
from eventbus.broker.memory import InMemoryBroker
from eventbus.broker.redis_streams import RedisStreamBroker


def create_broker(settings) -> RedisStreamBroker:
    """Build the Redis Streams broker from settings (shared Redis client)."""
    from basecore.redis import get_redis_client

    return RedisStreamBroker(
        get_redis_client(settings.REDIS_URL),
        consumer_name=settings.CONSUMER_NAME,
        group_name=settings.CONSUMER_GROUP,
        max_len=settings.STREAM_MAX_LEN,
    )


__all__ = [
    "BrokerError",
    "MessageBroker",
    "QueueStats",
    "RawMessage",
    "InMemoryBroker",
    "RedisStreamBroker",
    "create_broker",
]
