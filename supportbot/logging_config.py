"""Structured logging for the support bot.

Every line is one JSON object on stdout. Call sites pass structured fields as
``extra={"context": {...}}``. On top of the plain JSON formatter this module:

- lifts a ``conversation_id`` found in the context to a top-level field, so one
  conversation can be followed across the webhook, dispatcher, scenarios and
  fallback timer;
- stringifies context values JSON cannot encode (exceptions, ids, paths);
- provides ``conversation_logger``, the adapter the dispatcher uses for its
  per-conversation lines.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional, Union

ROOT_LOGGER_NAME = "supportbot"

# Libraries that log every request at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if context:
            entry["context"] = context
            if "conversation_id" in context:
                entry["conversation_id"] = str(context["conversation_id"])

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Route all logging to a single stdout JSON handler."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class LoggerAdapter(logging.LoggerAdapter):
    """Adds a fixed context to each record; per-call ``context=`` keys take precedence."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context = kwargs.pop("context", None)
        if context or self.extra:
            kwargs["extra"] = {"context": {**self.extra, **(context or {})}}
        return msg, kwargs


def conversation_logger(
    logger: logging.Logger, conversation_id: Optional[Union[int, str]]
) -> LoggerAdapter:
    return LoggerAdapter(logger, {"conversation_id": str(conversation_id)})
