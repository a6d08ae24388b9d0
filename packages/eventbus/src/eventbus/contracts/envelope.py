"""
Event Envelope - the wire representation of a domain event.

Producing services build an envelope right after a successful write and
hand it to the publisher. The notification worker rebuilds it from the
queue message body.

Wire format (JSON object):
    {"event_type": "...", "user_id": "...", "user_email": "...",
     "timestamp": "<RFC 3339>", "data": {...}}
"""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping


class EnvelopeError(ValueError):
    """Envelope could not be encoded or decoded."""


class EventSerializationError(EnvelopeError):
    """Envelope could not be serialized for publishing."""


class MalformedMessageError(EnvelopeError):
    """Message body is not a valid envelope (wrapped or direct)."""


_FRACTION_RE = re.compile(r"\.(\d+)")

# occurred_at of envelopes decoded without a timestamp
UNKNOWN_OCCURRED_AT = datetime.min.replace(tzinfo=timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an RFC 3339 timestamp.

    Accepts a "Z" suffix or numeric offset and any number of fractional
    digits (truncated to microseconds). Naive values are taken as UTC.
    """
    text = value.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    """Format a datetime as RFC 3339 in UTC with a "Z" suffix."""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class EventEnvelope:
    """
    Domain event envelope.

    Immutable: the payload is stored as a read-only mapping, so an envelope
    handed to the publisher cannot change underneath it.

    Attributes:
        event_type: Event tag (EventType value), never empty
        subject_user_id: User the event concerns
        subject_user_email: Notification destination, denormalized at publish
            time so the consumer needs no user lookup
        occurred_at: When the event occurred (timezone aware; UNKNOWN_OCCURRED_AT
            when the message carried no timestamp)
        payload: Event data; keys depend on event_type
    """

    event_type: str
    subject_user_id: str
    subject_user_email: str
    occurred_at: datetime
    payload: Mapping[str, Any] = field(hash=False)

    def __post_init__(self):
        if not isinstance(self.event_type, str) or not self.event_type:
            raise EnvelopeError("event_type must be a non-empty string")
        if self.occurred_at.tzinfo is None:
            object.__setattr__(self, "occurred_at", self.occurred_at.replace(tzinfo=timezone.utc))
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload or {})))

    @classmethod
    def create(
        cls,
        event_type: str,
        user_id: str,
        user_email: str,
        payload: Mapping[str, Any] | None = None,
    ) -> "EventEnvelope":
        """Create a new envelope stamped with the current UTC time."""
        return cls(
            event_type=str(event_type),
            subject_user_id=user_id,
            subject_user_email=user_email,
            occurred_at=datetime.now(timezone.utc),
            payload=payload or {},
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EventEnvelope":
        """
        Create an envelope from its wire dictionary.

        Raises:
            MalformedMessageError: if the dictionary is not a valid envelope
        """
        if not isinstance(data, Mapping):
            raise MalformedMessageError(f"envelope must be an object, got {type(data).__name__}")

        event_type = data.get("event_type")
        if not isinstance(event_type, str) or not event_type:
            raise MalformedMessageError("envelope has no event_type")

        timestamp = data.get("timestamp")
        if timestamp is None:
            occurred_at = UNKNOWN_OCCURRED_AT
        elif not isinstance(timestamp, str) or not timestamp:
            raise MalformedMessageError(f"invalid timestamp {timestamp!r}")
        else:
            try:
                occurred_at = parse_timestamp(timestamp)
            except ValueError as e:
                raise MalformedMessageError(f"invalid timestamp {timestamp!r}: {e}") from e

        payload = data.get("data") or {}
        if not isinstance(payload, Mapping):
            raise MalformedMessageError("envelope data must be an object")

        return cls(
            event_type=event_type,
            subject_user_id=str(data.get("user_id") or ""),
            subject_user_email=str(data.get("user_email") or ""),
            occurred_at=occurred_at,
            payload=payload,
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> "EventEnvelope":
        """Parse an envelope from its JSON encoding."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise MalformedMessageError(f"envelope is not valid JSON: {e}") from e
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire dictionary."""
        return {
            "event_type": self.event_type,
            "user_id": self.subject_user_id,
            "user_email": self.subject_user_email,
            "timestamp": format_timestamp(self.occurred_at),
            "data": dict(self.payload),
        }

    def to_json(self) -> str:
        """
        Serialize for publishing.

        Raises:
            EventSerializationError: if the payload holds values JSON cannot
                represent (Decimal, datetime, NaN, ...)
        """
        try:
            return json.dumps(self.to_dict(), allow_nan=False)
        except (TypeError, ValueError) as e:
            raise EventSerializationError(f"cannot serialize {self.event_type} event: {e}") from e
