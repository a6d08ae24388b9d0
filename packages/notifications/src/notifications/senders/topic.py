"""
Email topic sender.

Publishes each notification as JSON {to, subject, body} to the notification
email topic. Email delivery subscribes to that topic.
"""

import json
import logging

from eventbus.broker.base import BrokerError, MessageBroker
from notifications.senders.base import Notification, NotificationSender, SendError

logger = logging.getLogger(__name__)


class TopicEmailSender(NotificationSender):
    """Sends notifications through the email topic."""

    def __init__(self, broker: MessageBroker, topic_id: str):
        self.broker = broker
        self.topic_id = topic_id

    def send(self, destination: str, subject: str, body: str) -> None:
        message = json.dumps(Notification(to=destination, subject=subject, body=body).to_dict())

        try:
            message_id = self.broker.publish(self.topic_id, subject, message)
        except BrokerError as e:
            raise SendError(
                f"Failed to publish notification to {self.topic_id}: {e}",
                code=e.code,
                details={"topic_id": self.topic_id},
                retryable=e.retryable,
            ) from e

        logger.info(
            f"Notification sent to {destination}",
            extra={"to": destination, "subject": subject, "message_id": message_id},
        )
