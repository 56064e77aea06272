import json
import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator


WALK_ID_CTX = ContextVar("walk_id", default=None)


class WalkIdFilter(logging.Filter):
    """Attach the walk ID from the context var to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.walk_id = WALK_ID_CTX.get()
        return True


class JsonFormatter(logging.Formatter):
    """Formatter that renders log records as structured JSON."""

    standard_attrs = {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
    }

    def format(self, record: logging.LogRecord) -> str:
        log_payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        walk_id = getattr(record, "walk_id", None)
        if walk_id:
            log_payload["walk_id"] = walk_id

        if record.exc_info:
            log_payload["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in self.standard_attrs and key not in log_payload and key != "walk_id":
                log_payload[key] = value

        return json.dumps(log_payload, default=str)


def configure_logging(level: int | str = logging.WARNING) -> None:
    """Configure root logging to emit structured JSON to stderr."""

    if isinstance(level, str):
        level = level.upper()

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    handler.addFilter(WalkIdFilter())

    logging.basicConfig(level=level, handlers=[handler], force=True)


@contextmanager
def walk_context(walk_id: str | None = None) -> Iterator[str]:
    """Bind a walk ID to every log record emitted inside the block."""

    walk_id = walk_id or uuid.uuid4().hex
    token = WALK_ID_CTX.set(walk_id)
    try:
        yield walk_id
    finally:
        WALK_ID_CTX.reset(token)
