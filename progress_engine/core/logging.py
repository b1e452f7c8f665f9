"""Logging configuration for the progress engine.

Two output shapes share one root handler:

  _ContainerFormatter: human-readable, single line, for local dev and
    for reading job output in a terminal.

  _JsonFormatter: JSON Lines for log aggregation.  Context attached to a
    record through ``extra=`` (request fields from the middleware, job
    fields from the batch jobs) becomes top-level keys, so a dashboard
    can filter on ``job == "expiry" AND level == "WARNING"``
    without regex.

Set LOG_JSON=true in production to switch to JSON output.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar

# Correlation id of the unit of work in flight: the HTTP request id, or the
# task id while the worker runs a task.
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class _RequestIdFilter(logging.Filter):
    """Stamp records with the current correlation id unless one was passed."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get()  # type: ignore[attr-defined]
        return True


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter tuned for container stdout.

    - Always: ISO-8601 timestamp, level, logger name, message
    - WARNING+: appends [filename:lineno] so you can locate the guard clause
    - ERROR/CRITICAL: stack trace included when exc_info is present
    """

    _BASE_FMT = "%(asctime)s %(levelname)-8s %(name)s  %(message)s"
    _LOC_SUFFIX = "  [%(filename)s:%(lineno)d]"

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        base = super().formatTime(record, datefmt)
        ms = int(record.msecs)
        # Insert .NNN before the timezone offset (last 5 chars: +0000)
        return f"{base[:-5]}.{ms:03d}{base[-5:]}"

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.WARNING:
            self._style._fmt = self._BASE_FMT + self._LOC_SUFFIX
        else:
            self._style._fmt = self._BASE_FMT
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """JSON formatter: one object per line.

    Request fields are injected by RequestContextMiddleware; job fields
    (job, item_id, user_id, path_id) are passed by the batch jobs and the
    progress service via ``extra=``.
    """

    _CONTEXT_FIELDS = (
        "request_id",
        "method",
        "path",
        "status_code",
        "duration_ms",
        "job",
        "item_id",
        "user_id",
        "path_id",
    )

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in self._CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Configure the root logger for API and worker processes.

    Args:
        level_name: Log level string (debug/info/warning/error)
        json_format: If True, emit JSON lines. If False, human-readable.
                     Controlled by LOG_JSON env var in Settings.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())
    # On the handler, not the root logger: logger filters never see records
    # propagated up from child loggers.
    handler.addFilter(_RequestIdFilter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Keep third-party loggers from flooding at DEBUG
    for name in (
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "httpcore",
        "httpx",
        "sqlalchemy.engine",
    ):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
