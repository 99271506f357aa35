"""Process-wide logging configuration."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

from app.config import settings

_PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_RESERVED = set(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Render records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str | None = None, json_lines: bool | None = None) -> None:
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    handler = logging.StreamHandler()
    use_json = settings.log_json if json_lines is None else json_lines
    handler.setFormatter(JsonFormatter() if use_json else logging.Formatter(_PLAIN_FORMAT))
    root.addHandler(handler)
