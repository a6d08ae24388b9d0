"""
Stub Sender

Development sender that logs notifications without delivering them.
Useful for local development and testing.
"""

import logging

from notifications.senders.base import Notification, NotificationSender, SendError

logger = logging.getLogger(__name__)


class StubSender(NotificationSender):
    """
    Stub sender for development and testing.

    - Logs every notification
    - Records sent notifications in `sent`
    - Can be configured to fail every send
    """

    def __init__(self, simulate_failures: bool = False):
        self.simulate_failures = simulate_failures
        self.sent: list[Notification] = []

    def send(self, destination: str, subject: str, body: str) -> None:
        if self.simulate_failures:
            raise SendError("Simulated failure for testing", code="STUB_SIMULATED_FAILURE")

        self.sent.append(Notification(to=destination, subject=subject, body=body))

        logger.info(
            "[STUB] Sending notification",
            extra={"to": destination, "subject": subject, "body_length": len(body)},
        )
