"""
Notification Sender Base

Abstract interface for delivering rendered notifications.
Implementations: email topic (production), Stub (for development).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


class SendError(Exception):
    """Error delivering a notification."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = True,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.retryable = retryable


@dataclass(frozen=True)
class Notification:
    """A rendered notification ready to send."""

    to: str
    subject: str
    body: str

    def to_dict(self) -> dict[str, str]:
        return {"to": self.to, "subject": self.subject, "body": self.body}


class NotificationSender(ABC):
    """Delivers notifications to a destination address."""

    @abstractmethod
    def send(self, destination: str, subject: str, body: str) -> None:
        """
        Send a notification.

        Args:
            destination: Recipient email address
            subject: Subject line
            body: Rendered HTML body

        Raises:
            SendError: delivery failed
        """
        ...
