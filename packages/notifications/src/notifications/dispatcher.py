"""
Notification Dispatcher

Turns an event envelope into a sent notification:

1. Look up the route for the event type
2. Project the payload into template data (plus the recipient's email)
3. Render the route's template
4. Send to the event's user with the route's subject

Unknown event types fail before anything is rendered or sent.
"""

import logging
from typing import Mapping

from eventbus.contracts.envelope import EventEnvelope
from eventbus.contracts.types import missing_required_keys
from notifications.renderer import RenderError, TemplateRenderer
from notifications.routes import NOTIFICATION_ROUTES, NotificationRoute
from notifications.senders.base import Notification, NotificationSender, SendError

logger = logging.getLogger(__name__)


class DispatchError(Exception):
    """An envelope could not be turned into a sent notification."""


class UnknownEventTypeError(DispatchError):
    """No notification route for the event type."""

    def __init__(self, event_type: str):
        super().__init__(f"unknown event type: {event_type!r}")
        self.event_type = event_type


class NotificationDispatcher:
    """Routes, renders and sends notifications for event envelopes."""

    def __init__(
        self,
        renderer: TemplateRenderer,
        sender: NotificationSender,
        routes: Mapping[str, NotificationRoute] = NOTIFICATION_ROUTES,
    ):
        self.renderer = renderer
        self.sender = sender
        self.routes = routes

    def dispatch(self, envelope: EventEnvelope) -> Notification:
        """
        Deliver the notification for one event.

        Returns:
            The notification that was sent

        Raises:
            UnknownEventTypeError: no route for the event type
            DispatchError: rendering or sending failed
        """
        route = self.routes.get(envelope.event_type) if envelope.event_type else None
        if route is None:
            raise UnknownEventTypeError(envelope.event_type)

        missing = missing_required_keys(envelope.event_type, envelope.payload)
        if missing:
            logger.warning(
                f"Event {envelope.event_type} is missing payload keys: {', '.join(missing)}",
                extra={"event_type": envelope.event_type, "missing_keys": missing},
            )

        data = route.build_data(envelope.payload)
        data["UserEmail"] = envelope.subject_user_email

        try:
            body = self.renderer.render(route.template_name, data)
        except RenderError as e:
            raise DispatchError(f"Failed to render {route.template_name}: {e}") from e

        notification = Notification(
            to=envelope.subject_user_email,
            subject=route.subject,
            body=body,
        )

        try:
            self.sender.send(notification.to, notification.subject, notification.body)
        except SendError as e:
            raise DispatchError(f"Failed to send {envelope.event_type} notification: {e}") from e

        logger.info(
            f"Dispatched {envelope.event_type} notification",
            extra={
                "event_type": envelope.event_type,
                "user_id": envelope.subject_user_id,
                "template": route.template_name,
            },
        )
        return notification
