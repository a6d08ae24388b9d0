"""
Tests for the notification worker wiring.
"""

import threading
import time
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from basecore.settings import ConfigurationError
from eventbus import events
from eventbus.broker import BrokerError, InMemoryBroker
from notification_worker import main
from notifications.consumer import ConsumerSupervisor, PollerConfig, QueueBinding
from notifications.senders import StubSender, TopicEmailSender


class TestGetSender:
    """Tests for sender selection."""

    def test_stub(self, worker_settings):
        assert isinstance(main.get_sender(worker_settings, InMemoryBroker()), StubSender)

    def test_topic_requires_email_topic(self, worker_settings):
        settings = worker_settings.model_copy(update={"NOTIFICATION_SENDER": "topic", "NOTIFICATION_EMAIL_TOPIC": None})
        with pytest.raises(ConfigurationError):
            main.get_sender(settings, InMemoryBroker())

    def test_topic(self, worker_settings):
        settings = worker_settings.model_copy(update={
            "NOTIFICATION_SENDER": "topic",
            "NOTIFICATION_EMAIL_TOPIC": "notification-email-topic",
        })
        sender = main.get_sender(settings, InMemoryBroker())
        assert isinstance(sender, TopicEmailSender)
        assert sender.topic_id == "notification-email-topic"


class TestHealth:
    """Tests for the health endpoint."""

    def test_healthy(self):
        supervisor = ConsumerSupervisor(
            InMemoryBroker(),
            [QueueBinding("expense", "q-1", MagicMock())],
            PollerConfig(wait_seconds=1),
        )
        supervisor.start()
        try:
            response = TestClient(main.create_health_app(supervisor)).get("/health")
        finally:
            supervisor.stop(grace_period=5)

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "notification-worker", "queues": ["q-1"]}

    def test_unhealthy_when_stopping(self):
        supervisor = ConsumerSupervisor(InMemoryBroker(), [])
        supervisor.stop_event.set()

        response = TestClient(main.create_health_app(supervisor)).get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"


class TestRun:
    """Tests for startup and shutdown."""

    def test_unreachable_broker_is_fatal(self, worker_settings):
        broker = MagicMock()
        broker.ping.side_effect = BrokerError("Redis is unreachable")

        with patch.object(main, "create_broker", return_value=broker):
            assert main.run(worker_settings) == 1

    def test_missing_email_topic_is_fatal(self, worker_settings):
        settings = worker_settings.model_copy(update={"NOTIFICATION_SENDER": "topic"})

        with patch.object(main, "create_broker", return_value=InMemoryBroker()):
            assert main.run(settings) == 1

    def test_processes_until_shutdown(self, worker_settings):
        """Test a worker run: a queued event is dispatched, then a signal stops it."""
        broker = InMemoryBroker()
        broker.create_queue("expense-events-queue")
        envelope = events.user_registered("u-1", "ana@example.com", "Ana")
        broker.send("expense-events-queue", envelope.to_json())

        result = {}
        with patch.object(main, "create_broker", return_value=broker):
            thread = threading.Thread(target=lambda: result.setdefault("code", main.run(worker_settings)))
            thread.start()

            for _ in range(500):
                if not broker.bodies("expense-events-queue"):
                    break
                time.sleep(0.01)

            main.signal_handler(15, None)
            thread.join(timeout=10)

        assert not thread.is_alive()
        assert result["code"] == 0
        assert broker.bodies("expense-events-queue") == []

    def test_main_exits_on_configuration_error(self):
        with patch.object(main, "get_settings", side_effect=ConfigurationError("Invalid configuration: REDIS_URL")), \
                patch.object(main, "setup_logging"):
            with pytest.raises(SystemExit) as exc_info:
                main.main()
        assert exc_info.value.code == 1
