"""
Logging setup shared by all services.

Services call setup_logging() once at startup and then use
logging.getLogger(__name__). Structured fields are passed through
`extra={...}` and end up as top-level keys in JSON output.
"""

import json
import logging
import sys
from datetime import datetime, timezone

# Attributes every LogRecord has; anything else came from `extra`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One JSON object per line, including `extra` fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName,
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                entry[key] = value

        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(threadName)s] %(name)s: %(message)s"


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level name (defaults to settings LOG_LEVEL, else INFO)
        fmt: "json" or "text" (defaults to settings LOG_FORMAT, else json)
    """
    if level is None or fmt is None:
        try:
            from basecore.settings import get_settings

            settings = get_settings()
            level = level or settings.LOG_LEVEL
            fmt = fmt or settings.LOG_FORMAT
        except Exception:
            # Settings errors are reported by the caller; logging must come up first.
            level = level or "INFO"
            fmt = fmt or "json"

    handler = logging.StreamHandler(sys.stdout)
    if fmt == "text":
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    else:
        handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())

    # /health probes would flood the access log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
