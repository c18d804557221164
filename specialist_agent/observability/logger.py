# specialist_agent/observability/logger.py
"""
JSON logging for the service.

Every record carries the id of the HTTP request being served (when any),
so chunker, index and gateway logs can be joined to the request line.
The id lives in a ContextVar; FastAPI copies the context into the worker
thread that runs sync endpoints.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

from specialist_agent.config import LOG_DIR

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# LogRecord attributes that are not user extras
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


def bind_request_id(request_id: str):
    """Returns a token for reset_request_id()."""
    return request_id_ctx.set(request_id)


def reset_request_id(token):
    request_id_ctx.reset(token)


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    Extras passed via `extra={...}` become top-level fields; a name that
    collides with a base field is written as `extra_<name>`. Values that
    json cannot encode are rendered with str().
    """

    def format(self, record: logging.LogRecord) -> str:

        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_ctx.get()

        if request_id:
            entry["request_id"] = request_id

        for key, value in vars(record).items():

            if key in _RECORD_ATTRS or key.startswith("_"):
                continue

            entry[f"extra_{key}" if key in entry and key != "request_id" else key] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(log_level: str = "INFO", log_dir: str = LOG_DIR, to_file: bool = True):
    """
    Route the root logger to stdout (and `<log_dir>/app.log`) as JSON.
    Safe to call more than once: existing handlers are replaced.
    """

    formatter = JSONFormatter()

    handlers = [logging.StreamHandler(sys.stdout)]

    if to_file:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(log_dir, "app.log")))

    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper()))
    root.handlers = []

    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    # third-party HTTP clients log every call at INFO
    for name in ("urllib3", "httpx", "httpcore", "openai", "qdrant_client"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_request_start(logger, endpoint, **fields):

    logger.info("request_started", extra={"endpoint": endpoint, **fields})


def log_request_complete(logger, endpoint, latency_seconds, **fields):

    logger.info(
        "request_completed",
        extra={
            "endpoint": endpoint,
            "latency_seconds": round(latency_seconds, 3),
            **fields,
        },
    )


def log_request_error(logger, endpoint, error, **fields):

    logger.error(
        "request_failed",
        extra={
            "endpoint": endpoint,
            "error": str(error),
            "error_type": type(error).__name__,
            **fields,
        },
        exc_info=True,
    )
