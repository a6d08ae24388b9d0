"""
Event Types - the closed set of domain events.

Format: entity.action (e.g., expense.created). The event type is also used
as the broker subject when publishing, so subscribers can filter coarsely.
"""

from enum import Enum
from types import MappingProxyType


class EventType(str, Enum):
    """Known domain event types."""

    # Auth service
    USER_REGISTERED = "user.registered"

    # Expense service
    EXPENSE_CREATED = "expense.created"
    EXPENSE_UPDATED = "expense.updated"

    # Receipt service
    RECEIPT_UPLOADED = "receipt.uploaded"
    RECEIPT_LINKED = "receipt.linked"

    def __str__(self) -> str:
        return self.value


class EventSource(str, Enum):
    """Services that emit events. Each one publishes to its own topic."""

    AUTH = "auth"
    EXPENSE = "expense"
    RECEIPT = "receipt"

    def __str__(self) -> str:
        return self.value


EVENT_SOURCES = MappingProxyType({
    EventType.USER_REGISTERED.value: EventSource.AUTH,
    EventType.EXPENSE_CREATED.value: EventSource.EXPENSE,
    EventType.EXPENSE_UPDATED.value: EventSource.EXPENSE,
    EventType.RECEIPT_UPLOADED.value: EventSource.RECEIPT,
    EventType.RECEIPT_LINKED.value: EventSource.RECEIPT,
})

_EXPENSE_KEYS = frozenset({"expense_id", "amount", "description", "category", "expense_date"})

# Keys every producer sets in the payload for a given event type
REQUIRED_PAYLOAD_KEYS = MappingProxyType({
    EventType.USER_REGISTERED.value: frozenset({"user_id", "email", "name"}),
    EventType.EXPENSE_CREATED.value: _EXPENSE_KEYS,
    EventType.EXPENSE_UPDATED.value: _EXPENSE_KEYS,
    EventType.RECEIPT_UPLOADED.value: frozenset({"receipt_id", "file_name", "file_size", "mime_type"}),
    EventType.RECEIPT_LINKED.value: frozenset({"receipt_id", "expense_id", "file_name"}),
})

# Keys producers may set
OPTIONAL_PAYLOAD_KEYS = MappingProxyType({
    EventType.RECEIPT_UPLOADED.value: frozenset({"expense_id"}),
})


def missing_required_keys(event_type: str, payload) -> list[str]:
    """Return the required payload keys absent from `payload`, sorted."""
    required = REQUIRED_PAYLOAD_KEYS.get(event_type, frozenset())
    return sorted(key for key in required if payload.get(key) is None)
