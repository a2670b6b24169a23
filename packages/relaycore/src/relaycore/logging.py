"""
Logging setup shared by correlay apps.

Modules log through logging.getLogger(__name__) and attach context with
extra={...}; the JSON formatter emits those extra fields next to the message.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord has; anything else came in through extra=
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime", "taskName"}

_HANDLER_NAME = "correlay"


class JsonFormatter(logging.Formatter):
    """One JSON object per line, including fields passed via extra."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                entry[key] = value

        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """
    Configure the root logger.

    Safe to call more than once: the handler installed by a previous call is
    replaced rather than duplicated.

    Args:
        level: Log level name; defaults to LOG_LEVEL from settings
        fmt: "json" or "text"; defaults to LOG_FORMAT from settings
    """
    if level is None or fmt is None:
        from relaycore.settings import get_settings

        settings = get_settings()
        level = level or settings.LOG_LEVEL
        fmt = fmt or settings.LOG_FORMAT

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())
