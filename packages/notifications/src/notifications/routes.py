"""
Notification routes.

Static registry mapping each event type to its template, subject and the
function that projects the event payload into template data. Built once at
import and never mutated.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Mapping

from eventbus.contracts.types import EventType

RenderDataBuilder = Callable[[Mapping[str, Any]], dict[str, Any]]


@dataclass(frozen=True)
class NotificationRoute:
    """How one event type becomes a notification."""

    template_name: str
    subject: str
    build_data: RenderDataBuilder


def _project(payload: Mapping[str, Any], keys: Mapping[str, str]) -> dict[str, Any]:
    """Copy payload keys under their template names, skipping missing ones."""
    return {
        template_key: payload[payload_key]
        for payload_key, template_key in keys.items()
        if payload.get(payload_key) is not None
    }


_EXPENSE_FIELDS = {
    "expense_id": "ExpenseID",
    "amount": "Amount",
    "description": "Description",
    "category": "Category",
    "expense_date": "ExpenseDate",
}


def expense_data(payload: Mapping[str, Any]) -> dict[str, Any]:
    return _project(payload, _EXPENSE_FIELDS)


def receipt_uploaded_data(payload: Mapping[str, Any]) -> dict[str, Any]:
    data = _project(payload, {
        "receipt_id": "ReceiptID",
        "file_name": "FileName",
        "mime_type": "MimeType",
        "expense_id": "ExpenseID",
    })
    # JSON numbers may arrive as floats
    file_size = payload.get("file_size")
    if isinstance(file_size, (int, float)) and not isinstance(file_size, bool):
        data["FileSize"] = int(file_size)
    return data


def receipt_linked_data(payload: Mapping[str, Any]) -> dict[str, Any]:
    return _project(payload, {
        "receipt_id": "ReceiptID",
        "expense_id": "ExpenseID",
        "file_name": "FileName",
    })


def user_registered_data(payload: Mapping[str, Any]) -> dict[str, Any]:
    return _project(payload, {
        "user_id": "UserID",
        "email": "Email",
        "name": "Name",
    })


NOTIFICATION_ROUTES: Mapping[str, NotificationRoute] = MappingProxyType({
    EventType.EXPENSE_CREATED.value: NotificationRoute(
        template_name="expense_created",
        subject="New Expense Added",
        build_data=expense_data,
    ),
    EventType.EXPENSE_UPDATED.value: NotificationRoute(
        template_name="expense_updated",
        subject="Expense Updated",
        build_data=expense_data,
    ),
    EventType.RECEIPT_UPLOADED.value: NotificationRoute(
        template_name="receipt_uploaded",
        subject="Receipt Uploaded",
        build_data=receipt_uploaded_data,
    ),
    EventType.RECEIPT_LINKED.value: NotificationRoute(
        template_name="receipt_linked",
        subject="Receipt Linked to Expense",
        build_data=receipt_linked_data,
    ),
    EventType.USER_REGISTERED.value: NotificationRoute(
        template_name="user_registered",
        subject="Welcome to Expense Tracker!",
        build_data=user_registered_data,
    ),
})
