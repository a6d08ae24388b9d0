"""Event contracts - envelope, types and broker wrapper."""

from eventbus.contracts.envelope import (
    EnvelopeError,
    EventEnvelope,
    EventSerializationError,
    MalformedMessageError,
)
from eventbus.contracts.types import (
    EVENT_SOURCES,
    OPTIONAL_PAYLOAD_KEYS,
    REQUIRED_PAYLOAD_KEYS,
    EventSource,
    EventType,
    missing_required_keys,
)
from eventbus.contracts.wrapper import build_notification, unwrap_message_body

__all__ = [
    "EnvelopeError",
    "EventEnvelope",
    "EventSerializationError",
    "MalformedMessageError",
    "EVENT_SOURCES",
    "OPTIONAL_PAYLOAD_KEYS",
    "REQUIRED_PAYLOAD_KEYS",
    "EventSource",
    "EventType",
    "missing_required_keys",
    "build_notification",
    "unwrap_message_body",
]
