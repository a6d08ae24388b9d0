"""
Redis Streams Broker

Topics and queues on top of Redis Streams.

Layout:
- events:topics                              set of known topics
- events:topic:<topic_id>:subscriptions      set of subscribed queue ids
- events:queue:<queue_id>                    stream holding the queue's messages

Each queue stream has one consumer group. Receiving is XREADGROUP; the
pending entries list (PEL) is the lease: an entry that stays pending longer
than the lease is claimed again by the next receive. Deleting is XACK + XDEL.
"""

import logging
from uuid import uuid4

import redis

from basecore.redis import ensure_stream_group
from eventbus.broker.base import BrokerError, MessageBroker, QueueStats, RawMessage
from eventbus.contracts.wrapper import build_notification

logger = logging.getLogger(__name__)

DEFAULT_GROUP_NAME = "notification-service"
KEY_PREFIX = "events"


class RedisStreamBroker(MessageBroker):
    """
    Broker backed by Redis Streams.

    The client must be created with decode_responses=True
    (see basecore.redis.get_redis_client).
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        consumer_name: str,
        group_name: str = DEFAULT_GROUP_NAME,
        max_len: int | None = 100000,
        key_prefix: str = KEY_PREFIX,
    ):
        self.redis = redis_client
        self.consumer_name = consumer_name
        self.group_name = group_name
        self.max_len = max_len
        self.key_prefix = key_prefix

    # Key layout

    @property
    def topics_key(self) -> str:
        return f"{self.key_prefix}:topics"

    def subscriptions_key(self, topic_id: str) -> str:
        return f"{self.key_prefix}:topic:{topic_id}:subscriptions"

    def queue_stream(self, queue_id: str) -> str:
        return f"{self.key_prefix}:queue:{queue_id}"

    # Publishing

    def publish(self, topic_id: str, subject: str | None, body: str) -> str:
        try:
            if not self.redis.sismember(self.topics_key, topic_id):
                raise BrokerError(
                    f"Topic {topic_id} does not exist",
                    code="NotFound",
                    details={"topic_id": topic_id},
                    retryable=False,
                )

            queues = sorted(self.redis.smembers(self.subscriptions_key(topic_id)))
            message_id = str(uuid4())
            notification = build_notification(topic_id, subject, body, message_id=message_id)

            if queues:
                pipe = self.redis.pipeline()
                for queue_id in queues:
                    self._xadd(pipe, self.queue_stream(queue_id), notification)
                pipe.execute()

        except redis.RedisError as e:
            raise BrokerError(f"Failed to publish to {topic_id}: {e}", code=type(e).__name__) from e

        logger.debug(
            f"Published to topic {topic_id}",
            extra={
                "topic_id": topic_id,
                "subject": subject,
                "message_id": message_id,
                "subscribers": len(queues),
            },
        )
        return message_id

    def send(self, queue_id: str, body: str) -> str:
        try:
            return self._xadd(self.redis, self.queue_stream(queue_id), body)
        except redis.RedisError as e:
            raise BrokerError(f"Failed to send to {queue_id}: {e}", code=type(e).__name__) from e

    def _xadd(self, client, stream_name: str, body: str):
        if self.max_len:
            return client.xadd(stream_name, {"body": body}, maxlen=self.max_len, approximate=True)
        return client.xadd(stream_name, {"body": body})

    # Consuming

    def receive(
        self,
        queue_id: str,
        max_batch: int = 10,
        wait_seconds: int = 20,
        lease_seconds: int = 30,
    ) -> list[RawMessage]:
        """
        Receive up to max_batch messages.

        Entries whose lease expired are redelivered first; only when there
        are none does the call block on new entries for up to wait_seconds.
        """
        stream_name = self.queue_stream(queue_id)

        try:
            expired = self._claim_expired(stream_name, max_batch, lease_seconds * 1000)
            if expired:
                return expired

            result = self.redis.xreadgroup(
                self.group_name,
                self.consumer_name,
                {stream_name: ">"},
                count=max_batch,
                # block=0 would block forever
                block=int(wait_seconds * 1000) if wait_seconds > 0 else None,
            )
        except redis.ResponseError as e:
            if "NOGROUP" in str(e):
                raise BrokerError(
                    f"Queue {queue_id} does not exist",
                    code="NOGROUP",
                    details={"queue_id": queue_id},
                ) from e
            raise BrokerError(f"Failed to receive from {queue_id}: {e}", code=type(e).__name__) from e
        except redis.RedisError as e:
            raise BrokerError(f"Failed to receive from {queue_id}: {e}", code=type(e).__name__) from e

        if not result:
            return []

        # Result format: [[stream_name, [(msg_id, fields), ...]]]
        messages = []
        for _stream, entries in result:
            for msg_id, fields in entries:
                messages.append(RawMessage(body=(fields or {}).get("body", ""), handle=msg_id))

        return messages

    def _claim_expired(self, stream_name: str, count: int, lease_ms: int) -> list[RawMessage]:
        """Claim entries whose lease ran out (pending longer than lease_ms)."""
        pending = self.redis.xpending_range(
            stream_name,
            self.group_name,
            min="-",
            max="+",
            count=count,
            idle=lease_ms,
        )
        if not pending:
            return []

        deliveries = {entry["message_id"]: entry["times_delivered"] for entry in pending}
        claimed = self.redis.xclaim(
            stream_name,
            self.group_name,
            self.consumer_name,
            lease_ms,
            list(deliveries),
        )

        messages = []
        for entry in claimed:
            if not entry:
                continue
            msg_id, fields = entry
            if not fields:
                # Entry was trimmed from the stream; nothing left to deliver
                self.redis.xack(stream_name, self.group_name, msg_id)
                continue
            messages.append(
                RawMessage(
                    body=fields.get("body", ""),
                    handle=msg_id,
                    receive_count=deliveries.get(msg_id, 0) + 1,
                )
            )

        if messages:
            logger.info(
                f"Reclaimed {len(messages)} messages with expired lease",
                extra={"stream": stream_name, "count": len(messages)},
            )

        return messages

    def delete(self, queue_id: str, handle: str) -> None:
        stream_name = self.queue_stream(queue_id)
        try:
            pipe = self.redis.pipeline()
            pipe.xack(stream_name, self.group_name, handle)
            pipe.xdel(stream_name, handle)
            pipe.execute()
        except redis.RedisError as e:
            raise BrokerError(f"Failed to delete {handle} from {queue_id}: {e}", code=type(e).__name__) from e

    # Administration

    def create_topic(self, topic_id: str) -> bool:
        try:
            return bool(self.redis.sadd(self.topics_key, topic_id))
        except redis.RedisError as e:
            raise BrokerError(f"Failed to create topic {topic_id}: {e}", code=type(e).__name__) from e

    def create_queue(self, queue_id: str) -> bool:
        try:
            return ensure_stream_group(self.redis, self.queue_stream(queue_id), self.group_name)
        except redis.RedisError as e:
            raise BrokerError(f"Failed to create queue {queue_id}: {e}", code=type(e).__name__) from e

    def subscribe(self, topic_id: str, queue_id: str) -> bool:
        try:
            if not self.redis.sismember(self.topics_key, topic_id):
                raise BrokerError(f"Topic {topic_id} does not exist", code="NotFound", retryable=False)
            return bool(self.redis.sadd(self.subscriptions_key(topic_id), queue_id))
        except redis.RedisError as e:
            raise BrokerError(f"Failed to subscribe {queue_id} to {topic_id}: {e}", code=type(e).__name__) from e

    def queue_stats(self, queue_id: str) -> QueueStats:
        stream_name = self.queue_stream(queue_id)
        try:
            length = self.redis.xlen(stream_name)
            pending_info = self.redis.xpending(stream_name, self.group_name)
        except redis.ResponseError:
            return QueueStats(queue_id=queue_id, length=0, in_flight=0)
        except redis.RedisError as e:
            raise BrokerError(f"Failed to read stats for {queue_id}: {e}", code=type(e).__name__) from e

        in_flight = pending_info.get("pending", 0) if pending_info else 0
        return QueueStats(queue_id=queue_id, length=length, in_flight=in_flight)

    def ping(self) -> None:
        try:
            self.redis.ping()
        except redis.RedisError as e:
            raise BrokerError(f"Redis is unreachable: {e}", code=type(e).__name__) from e
