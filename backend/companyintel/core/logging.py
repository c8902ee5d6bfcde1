import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping

from .config import get_settings

STRUCTURED_FIELDS = ("request_id", "company", "connector", "step")

# Chatty third-party loggers; request-level detail lives in our own lines.
_QUIET_LOGGERS = ("httpx", "httpcore", "openai")

_LOGGING_CONFIGURED = False


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line.

    Structured fields are picked up from `extra=` (or a ContextAdapter)
    and omitted when absent, so log lines stay greppable by company.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": getattr(record, "service", "company_intel_backend"),
        }

        for field in STRUCTURED_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """Carries request-scoped fields into every call; per-call extra wins."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]):
        kwargs["extra"] = {**(self.extra or {}), **(kwargs.get("extra") or {})}
        return msg, kwargs


def bind(logger: logging.Logger, **fields: Any) -> ContextAdapter:
    return ContextAdapter(logger, {k: v for k, v in fields.items() if v is not None})


def configure_logging(level: int | str | None = None) -> None:
    """
    Configure the root logger once with JSON output on stdout.

    Level comes from LOG_LEVEL unless given. Later calls are no-ops.
    """
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    if level is None:
        level = get_settings().LOG_LEVEL.upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _LOGGING_CONFIGURED = True
