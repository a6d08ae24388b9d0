"""
Tests for the event envelope.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from eventbus.contracts.envelope import (
    EnvelopeError,
    EventEnvelope,
    EventSerializationError,
    MalformedMessageError,
    UNKNOWN_OCCURRED_AT,
    format_timestamp,
    parse_timestamp,
)
from eventbus.contracts.types import EventType


class TestEventEnvelope:
    """Tests for building and serializing envelopes."""

    def test_create_stamps_utc_time(self):
        """Test that create() stamps a timezone-aware UTC time."""
        envelope = EventEnvelope.create(EventType.USER_REGISTERED, "u-1", "a@example.com")
        assert envelope.occurred_at.tzinfo is not None
        assert envelope.occurred_at.utcoffset().total_seconds() == 0

    def test_create_accepts_enum_event_type(self):
        """Test that the enum is stored as its string value."""
        envelope = EventEnvelope.create(EventType.RECEIPT_LINKED, "u-1", "a@example.com")
        assert envelope.event_type == "receipt.linked"
        assert type(envelope.event_type) is str

    def test_empty_event_type_rejected(self):
        """Test that an empty event type cannot be constructed."""
        with pytest.raises(EnvelopeError):
            EventEnvelope.create("", "u-1", "a@example.com")

    def test_hashable(self, expense_envelope):
        """Test that envelopes can be hashed and equal envelopes hash alike."""
        copy = EventEnvelope.from_json(expense_envelope.to_json())
        assert hash(copy) == hash(expense_envelope)
        assert len({expense_envelope, copy}) == 1

    def test_payload_is_read_only(self):
        """Test that the payload cannot be mutated after construction."""
        payload = {"name": "Ana"}
        envelope = EventEnvelope.create(EventType.USER_REGISTERED, "u-1", "a@example.com", payload)
        payload["name"] = "Changed"

        assert envelope.payload["name"] == "Ana"
        with pytest.raises(TypeError):
            envelope.payload["name"] = "Other"

    def test_to_dict_wire_keys(self, expense_envelope):
        """Test the wire format keys."""
        data = expense_envelope.to_dict()
        assert set(data) == {"event_type", "user_id", "user_email", "timestamp", "data"}
        assert data["user_email"] == "ana@example.com"
        assert data["timestamp"].endswith("Z")

    def test_json_round_trip(self, expense_envelope):
        """Test that decoding an encoded envelope gives the same envelope."""
        assert EventEnvelope.from_json(expense_envelope.to_json()) == expense_envelope

    def test_unserializable_payload(self):
        """Test that non-JSON payload values raise EventSerializationError."""
        envelope = EventEnvelope.create(
            EventType.EXPENSE_CREATED, "u-1", "a@example.com", {"amount": Decimal("1.00")}
        )
        with pytest.raises(EventSerializationError):
            envelope.to_json()

    def test_nan_is_not_serializable(self):
        """Test that NaN is rejected instead of emitting invalid JSON."""
        envelope = EventEnvelope.create(
            EventType.RECEIPT_UPLOADED, "u-1", "a@example.com", {"file_size": float("nan")}
        )
        with pytest.raises(EventSerializationError):
            envelope.to_json()


class TestEnvelopeDecoding:
    """Tests for decoding envelopes from message bodies."""

    def test_from_dict_defaults(self):
        """Test that missing user fields and data default to empty."""
        envelope = EventEnvelope.from_dict({
            "event_type": "user.registered",
            "timestamp": "2024-03-15T10:00:00Z",
        })
        assert envelope.subject_user_id == ""
        assert envelope.subject_user_email == ""
        assert dict(envelope.payload) == {}

    @pytest.mark.parametrize("data", [
        {"event_type": "user.registered", "user_email": "a@example.com"},
        {"event_type": "user.registered", "user_email": "a@example.com", "timestamp": None},
    ])
    def test_from_dict_without_timestamp(self, data):
        """Test that a missing timestamp decodes to the zero time instead of failing."""
        envelope = EventEnvelope.from_dict(data)
        assert envelope.occurred_at == UNKNOWN_OCCURRED_AT
        assert envelope.occurred_at == datetime(1, 1, 1, tzinfo=timezone.utc)
        assert EventEnvelope.from_json(envelope.to_json()) == envelope

    def test_from_dict_unknown_type_is_kept(self):
        """Test that decoding does not judge the event type, only its presence."""
        envelope = EventEnvelope.from_dict({"event_type": "invoice.paid", "timestamp": "2024-03-15T10:00:00Z"})
        assert envelope.event_type == "invoice.paid"

    @pytest.mark.parametrize("data", [
        {"timestamp": "2024-03-15T10:00:00Z"},
        {"event_type": "", "timestamp": "2024-03-15T10:00:00Z"},
        {"event_type": "user.registered", "timestamp": ""},
        {"event_type": "user.registered", "timestamp": 1710496800},
        {"event_type": "user.registered", "timestamp": "yesterday"},
        {"event_type": "user.registered", "timestamp": "2024-03-15T10:00:00Z", "data": [1, 2]},
    ])
    def test_from_dict_malformed(self, data):
        """Test that invalid envelopes raise MalformedMessageError."""
        with pytest.raises(MalformedMessageError):
            EventEnvelope.from_dict(data)

    def test_from_json_invalid(self):
        """Test that invalid JSON raises MalformedMessageError."""
        with pytest.raises(MalformedMessageError):
            EventEnvelope.from_json("{not json")

    def test_from_json_not_an_object(self):
        """Test that a JSON array is not an envelope."""
        with pytest.raises(MalformedMessageError):
            EventEnvelope.from_json(json.dumps(["user.registered"]))

    def test_malformed_is_a_value_error(self):
        """Test the exception hierarchy."""
        assert issubclass(MalformedMessageError, EnvelopeError)
        assert issubclass(EventSerializationError, ValueError)


class TestTimestamps:
    """Tests for RFC 3339 timestamp handling."""

    def test_parse_nanoseconds(self):
        """Test that nanosecond precision is truncated to microseconds."""
        parsed = parse_timestamp("2024-03-15T10:00:00.123456789Z")
        assert parsed == datetime(2024, 3, 15, 10, 0, 0, 123456, tzinfo=timezone.utc)

    def test_parse_offset(self):
        """Test that numeric offsets are kept."""
        parsed = parse_timestamp("2024-03-15T07:00:00-03:00")
        assert parsed == datetime(2024, 3, 15, 10, 0, 0, tzinfo=timezone.utc)

    def test_parse_naive_is_utc(self):
        """Test that a timestamp without offset is taken as UTC."""
        assert parse_timestamp("2024-03-15T10:00:00").tzinfo == timezone.utc

    def test_format_uses_z_suffix(self):
        """Test UTC formatting."""
        value = datetime(2024, 3, 15, 10, 0, 0, tzinfo=timezone.utc)
        assert format_timestamp(value) == "2024-03-15T10:00:00Z"
