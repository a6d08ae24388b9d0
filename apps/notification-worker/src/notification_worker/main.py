"""
Notification Worker Service

Consumes domain events from the per-source queues and sends the matching
email notifications.

This worker uses ONLY:
- basecore (settings, logging, redis)
- eventbus (broker, contracts, topology)
- notifications (routing, rendering, sending, queue consumers)

Features:
- One long-polling consumer thread per configured queue
- Redelivery of unprocessed messages after the lease expires
- Optional dead letter queue for poison messages
- /health endpoint
- Graceful shutdown
"""

import logging
import signal
import sys
import threading

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from basecore.logging import setup_logging
from basecore.settings import ConfigurationError, Settings, get_settings
from eventbus.broker import BrokerError, MessageBroker, create_broker
from notifications.consumer import ConsumerSupervisor, PollerConfig, build_bindings
from notifications.dispatcher import NotificationDispatcher
from notifications.renderer import Jinja2TemplateRenderer
from notifications.senders import NotificationSender, StubSender, TopicEmailSender

logger = logging.getLogger(__name__)

# Graceful shutdown
shutdown_requested = threading.Event()


def signal_handler(signum, frame):
    logger.info(f"Received signal {signum}, requesting shutdown...")
    shutdown_requested.set()


def get_sender(settings: Settings, broker: MessageBroker) -> NotificationSender:
    """
    Get the configured notification sender.

    Raises:
        ConfigurationError: topic sender selected without NOTIFICATION_EMAIL_TOPIC
    """
    if settings.NOTIFICATION_SENDER == "stub":
        return StubSender()
    if not settings.NOTIFICATION_EMAIL_TOPIC:
        raise ConfigurationError("NOTIFICATION_EMAIL_TOPIC is required")
    return TopicEmailSender(broker, settings.NOTIFICATION_EMAIL_TOPIC)


def create_supervisor(settings: Settings, broker: MessageBroker) -> ConsumerSupervisor:
    """Wire dispatcher and pollers for the configured queues."""
    dispatcher = NotificationDispatcher(
        Jinja2TemplateRenderer(settings.TEMPLATES_DIR),
        get_sender(settings, broker),
    )
    return ConsumerSupervisor(
        broker,
        build_bindings(settings, dispatcher.dispatch),
        PollerConfig.from_settings(settings),
    )


def create_health_app(supervisor: ConsumerSupervisor) -> FastAPI:
    """Health endpoint: unhealthy once any poller thread died or is stopping."""
    app = FastAPI(
        title="Notification Worker",
        description="Health of the notification queue consumers",
        version="1.0.0",
    )

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        queues = supervisor.running_queues
        healthy = not supervisor.stop_event.is_set() and len(queues) == len(supervisor.pollers)
        return JSONResponse(
            status_code=200 if healthy else 503,
            content={
                "status": "healthy" if healthy else "unhealthy",
                "service": "notification-worker",
                "queues": queues,
            },
        )

    return app


def start_health_server(app: FastAPI, host: str, port: int) -> tuple[uvicorn.Server, threading.Thread]:
    """Serve the health app on a background thread."""
    server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_config=None))
    thread = threading.Thread(target=server.run, name="health-server", daemon=True)
    thread.start()
    logger.info(f"Health server listening on {host}:{port}")
    return server, thread


def run(settings: Settings) -> int:
    """Run the worker until a shutdown signal. Returns the exit code."""
    try:
        broker = create_broker(settings)
        broker.ping()
        supervisor = create_supervisor(settings, broker)
        supervisor.start()
    except (BrokerError, ConfigurationError) as e:
        logger.error(f"Failed to start notification worker: {e}")
        return 1

    health = None
    if settings.HEALTH_PORT:
        health = start_health_server(
            create_health_app(supervisor),
            settings.HEALTH_HOST,
            settings.HEALTH_PORT,
        )

    logger.info(
        f"Notification worker started "
        f"(consumer={settings.CONSUMER_NAME}, sender={settings.NOTIFICATION_SENDER}, "
        f"queues={len(supervisor.pollers)})"
    )

    shutdown_requested.wait()

    logger.info("Notification worker shutting down gracefully")
    grace = settings.SHUTDOWN_GRACE_SECONDS
    if not supervisor.stop(grace_period=grace):
        logger.warning("Some pollers were still running at shutdown")

    if health:
        server, thread = health
        server.should_exit = True
        thread.join(timeout=grace)

    logger.info("Notification worker stopped")
    return 0


def main():
    """Entry point."""
    try:
        settings = get_settings()
    except ConfigurationError as e:
        setup_logging()
        logger.error(str(e))
        sys.exit(1)

    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    logger.info("Notification worker starting...")
    sys.exit(run(settings))


if __name__ == "__main__":
    main()
