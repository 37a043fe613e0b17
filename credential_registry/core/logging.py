"""Logging configuration shared by the issuance and verification services.

Both services run as separate containers that write to stdout, so there
is exactly one handler on the root logger.  Two output shapes:

  _ContainerFormatter - single-line, human-readable, for local dev.
  _JsonFormatter      - one JSON object per line, for log aggregation.
                        Set LOG_JSON=true in production.

PROVENANCE ON EVERY LINE
-------------------------
Issuance records and verification log entries are stamped with the
worker identity; the same identity is stamped on every log line so an
operator can join "which pod issued CRED-1" with "what did that pod log
at the time".  _ContextFilter sits on the handler (not on the root
logger) because logger-level filters are skipped for records propagated
up from child loggers.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar

# Set by RequestContextMiddleware; read by _ContextFilter.
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class _ContextFilter(logging.Filter):
    """Attach request id, service name and worker id to every record."""

    def __init__(self, service: str | None, worker_id: str | None) -> None:
        super().__init__()
        self._service = service
        self._worker_id = worker_id

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        if self._service is not None:
            record.service = self._service  # type: ignore[attr-defined]
        if self._worker_id is not None:
            record.worker_id = self._worker_id  # type: ignore[attr-defined]
        return True


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter tuned for container stdout.

    - Always: ISO-8601 timestamp, level, logger name, request id, message
    - WARNING+: appends [filename:lineno]
    - exc_info renders the traceback below the line
    """

    _BASE_FMT = "%(asctime)s %(levelname)-8s %(name)s [%(request_id)s]  %(message)s"
    _LOC_SUFFIX = "  [%(filename)s:%(lineno)d]"

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        base = super().formatTime(record, datefmt)
        # Milliseconds go before the +0000 offset.
        return f"{base[:-5]}.{int(record.msecs):03d}{base[-5:]}"

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "request_id"):
            record.request_id = "-"  # type: ignore[attr-defined]
        if record.levelno >= logging.WARNING:
            self._style._fmt = self._BASE_FMT + self._LOC_SUFFIX
        else:
            self._style._fmt = self._BASE_FMT
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """JSON Lines formatter.

    Context fields are promoted to top-level keys so they can be
    filtered on directly (e.g. credential_id == "CRED-1").
    """

    _CONTEXT_FIELDS = (
        "request_id",
        "method",
        "path",
        "status_code",
        "duration_ms",
        "service",
        "worker_id",
        "credential_id",
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


def setup_logging(
    level_name: str,
    *,
    json_format: bool = False,
    service: str | None = None,
    worker_id: str | None = None,
) -> None:
    """Configure the root logger for a service process.

    Args:
        level_name: debug/info/warning/error; unknown values fall back to INFO.
        json_format: emit JSON lines instead of the text format.
        service: service name stamped on each record ("issuance-service").
        worker_id: worker identity stamped on each record.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())
    handler.addFilter(_ContextFilter(service, worker_id))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in (
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "httpcore",
        "httpx",
        "aiosqlite",
    ):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
