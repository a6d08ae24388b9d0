"""
Event builders for producing services.

One function per event type. The user's email is always an explicit
argument: handlers pass the authenticated user's email down through the
service layer instead of reading it from ambient request state.

Payload values are normalized the way consumers expect them:
amounts as decimal strings, dates as YYYY-MM-DD, sizes as integers.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from eventbus.contracts.envelope import EventEnvelope
from eventbus.contracts.types import EventType


def _amount(value: Decimal | float | int | str) -> str:
    if isinstance(value, Decimal):
        return format(value.quantize(Decimal("0.01")), "f")
    if isinstance(value, (int, float)):
        return format(Decimal(str(value)).quantize(Decimal("0.01")), "f")
    return str(value)


def _date(value: date | datetime | str) -> str:
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def user_registered(user_id: str, email: str, name: str) -> EventEnvelope:
    """A new user account was created. The user is their own recipient."""
    return EventEnvelope.create(
        EventType.USER_REGISTERED,
        user_id=user_id,
        user_email=email,
        payload={"user_id": user_id, "email": email, "name": name},
    )


def _expense_payload(expense_id, amount, description, category, expense_date) -> dict[str, Any]:
    return {
        "expense_id": str(expense_id),
        "amount": _amount(amount),
        "description": description,
        "category": category,
        "expense_date": _date(expense_date),
    }


def expense_created(
    user_id: str,
    user_email: str,
    expense_id: str,
    amount: Decimal | float | str,
    description: str,
    category: str,
    expense_date: date | str,
) -> EventEnvelope:
    return EventEnvelope.create(
        EventType.EXPENSE_CREATED,
        user_id=user_id,
        user_email=user_email,
        payload=_expense_payload(expense_id, amount, description, category, expense_date),
    )


def expense_updated(
    user_id: str,
    user_email: str,
    expense_id: str,
    amount: Decimal | float | str,
    description: str,
    category: str,
    expense_date: date | str,
) -> EventEnvelope:
    return EventEnvelope.create(
        EventType.EXPENSE_UPDATED,
        user_id=user_id,
        user_email=user_email,
        payload=_expense_payload(expense_id, amount, description, category, expense_date),
    )


def receipt_uploaded(
    user_id: str,
    user_email: str,
    receipt_id: str,
    file_name: str,
    file_size: int,
    mime_type: str,
    expense_id: str | None = None,
) -> EventEnvelope:
    """A receipt file was stored; expense_id is set when uploaded against an expense."""
    payload: dict[str, Any] = {
        "receipt_id": str(receipt_id),
        "file_name": file_name,
        "file_size": int(file_size),
        "mime_type": mime_type,
    }
    if expense_id:
        payload["expense_id"] = str(expense_id)

    return EventEnvelope.create(
        EventType.RECEIPT_UPLOADED,
        user_id=user_id,
        user_email=user_email,
        payload=payload,
    )


def receipt_linked(
    user_id: str,
    user_email: str,
    receipt_id: str,
    expense_id: str,
    file_name: str,
) -> EventEnvelope:
    return EventEnvelope.create(
        EventType.RECEIPT_LINKED,
        user_id=user_id,
        user_email=user_email,
        payload={
            "receipt_id": str(receipt_id),
            "expense_id": str(expense_id),
            "file_name": file_name,
        },
    )
