"""
Service settings.

All configuration comes from environment variables (or a .env file).
Every service builds on the same Settings object and only reads the
fields it needs.
"""

import functools
import os
import socket
from typing import Literal

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Missing or invalid configuration. Fatal at startup."""


class Settings(BaseSettings):
    """
    Environment-driven configuration.

    REDIS_URL is the broker credential and has no default: a process that
    publishes or consumes cannot start without it.

    Queue settings left empty disable the matching consumer.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Broker
    REDIS_URL: str
    STREAM_MAX_LEN: int = 100000

    # Topics the producing services publish to
    EXPENSE_EVENTS_TOPIC: str = "expense-events-topic"
    RECEIPT_EVENTS_TOPIC: str = "receipt-events-topic"
    AUTH_EVENTS_TOPIC: str = "auth-events-topic"

    # Queues the notification worker consumes (one per event source)
    EXPENSE_EVENTS_QUEUE: str | None = None
    RECEIPT_EVENTS_QUEUE: str | None = None
    AUTH_EVENTS_QUEUE: str | None = None

    # Outbound email notifications
    NOTIFICATION_EMAIL_TOPIC: str | None = None
    NOTIFICATION_SENDER: Literal["topic", "stub"] = "topic"
    TEMPLATES_DIR: str | None = None

    # Consumer
    CONSUMER_GROUP: str = "notification-service"
    CONSUMER_NAME: str = f"notifier-{socket.gethostname()}-{os.getpid()}"
    POLL_BATCH_SIZE: int = 10
    POLL_WAIT_SECONDS: int = 20
    LEASE_SECONDS: int = 30
    RECEIVE_ERROR_BACKOFF_SECONDS: float = 5.0
    MAX_RECEIVE_COUNT: int = 0  # 0 = redeliver forever
    DEAD_LETTER_QUEUE: str | None = None

    # Publisher
    PUBLISH_MAX_WORKERS: int = 4

    # Process
    SHUTDOWN_GRACE_SECONDS: float = 30.0
    HEALTH_HOST: str = "0.0.0.0"
    HEALTH_PORT: int = 8083  # 0 = no health server

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"


def load_settings(**overrides) -> Settings:
    """Build Settings, turning validation errors into ConfigurationError."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ConfigurationError(f"Invalid configuration: {', '.join(missing)}") from e


@functools.lru_cache()
def get_settings() -> Settings:
    """
    Get settings (cached).

    Raises ConfigurationError when required variables are missing.
    """
    return load_settings()
