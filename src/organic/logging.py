"""JSON logging for the runtime.

Runtime modules log through ``logging.getLogger(__name__)`` and pass the
agent, task and tool they act on via ``extra=``. Those three keys become
top-level fields of each JSON line; any other extra lands under ``"extra"``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Mapping, TextIO

# Attributes every LogRecord carries; anything else was passed via ``extra=``.
_STANDARD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

CONTEXT_FIELDS = ("agent", "task", "tool")


class ContextDefaults(logging.Filter):
    """Fills in context fields a record did not set itself."""

    def __init__(self, defaults: Mapping[str, Any]) -> None:
        super().__init__()
        self.defaults = dict(defaults)

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.defaults.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        payload["message"] = record.getMessage()

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and key not in CONTEXT_FIELDS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str = "WARNING", stream: TextIO | None = None, **defaults: Any) -> None:
    """Send root logging to ``stream`` (stderr by default) as JSON lines.

    Keyword arguments such as ``agent="story-builder"`` are stamped on every
    record that does not carry its own value. Calling this again replaces
    the previous handler.
    """

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=stream or sys.stderr)
    handler.setFormatter(JsonFormatter())
    if defaults:
        handler.addFilter(ContextDefaults(defaults))
    root.addHandler(handler)
    root.setLevel(level.upper())
