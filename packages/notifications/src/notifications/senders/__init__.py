"""Notification senders."""

from notifications.senders.base import Notification, NotificationSender, SendError
from notifications.senders.stub import StubSender
from notifications.senders.topic import TopicEmailSender

__all__ = [
    "Notification",
    "NotificationSender",
    "SendError",
    "StubSender",
    "TopicEmailSender",
]
