"""
Topic Notification Wrapper

When a queue is subscribed to a topic, every message the queue receives is
wrapped by the broker:

    {"Type": "Notification", "MessageId": "...", "TopicArn": "...",
     "Subject": "...", "Message": "<envelope JSON>", "Timestamp": "..."}

Messages enqueued directly (no topic in between) carry the envelope JSON
as-is. The consumer accepts both, so producers never need to know the
delivery topology.
"""

import json
from datetime import datetime, timezone
from typing import Any, Mapping
from uuid import uuid4

from eventbus.contracts.envelope import (
    EventEnvelope,
    MalformedMessageError,
    format_timestamp,
)

NOTIFICATION_TYPE = "Notification"


def build_notification(
    topic_id: str,
    subject: str | None,
    message: str,
    message_id: str | None = None,
    timestamp: datetime | None = None,
) -> str:
    """
    Wrap a published body the way a topic delivers it to a queue.

    Returns:
        JSON string of the notification wrapper
    """
    return json.dumps({
        "Type": NOTIFICATION_TYPE,
        "MessageId": message_id or str(uuid4()),
        "TopicArn": topic_id,
        "Subject": subject or "",
        "Message": message,
        "Timestamp": format_timestamp(timestamp or datetime.now(timezone.utc)),
    })


def _get_field(data: Mapping[str, Any], name: str) -> Any:
    """Case-insensitive field lookup ("Type", "type", "TYPE" all match)."""
    if name in data:
        return data[name]
    lowered = name.lower()
    for key, value in data.items():
        if isinstance(key, str) and key.lower() == lowered:
            return value
    return None


def unwrap_message_body(body: str | bytes) -> EventEnvelope:
    """
    Recover the event envelope from a raw queue message body.

    1. Topic-wrapped: the discriminator says "Notification", so the envelope
       is the JSON string in "Message".
    2. Otherwise the body itself is the envelope.

    Raises:
        MalformedMessageError: if neither form yields a valid envelope
    """
    try:
        outer = json.loads(body)
    except (TypeError, ValueError) as e:
        raise MalformedMessageError(f"message body is not valid JSON: {e}") from e

    if isinstance(outer, Mapping) and _get_field(outer, "Type") == NOTIFICATION_TYPE:
        inner = _get_field(outer, "Message")
        if not isinstance(inner, (str, bytes)):
            raise MalformedMessageError("notification has no Message string")
        return EventEnvelope.from_json(inner)

    return EventEnvelope.from_dict(outer)
