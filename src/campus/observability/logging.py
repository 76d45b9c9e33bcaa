"""
Structured Logging with Trace Correlation

The adapters attach statement context to their log records through
``extra`` (backend, statement, error_type, sqlstate). The JSON formatter
gathers those fields under a ``db`` key and clips the statement to one
line, so a failed write reads as a single entry next to the trace and span
ids of the ``db.*`` span it ran in.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .tracing import DEFAULT_SERVICE_NAME, get_current_span, get_trace_id

# Record attributes the database adapters set through ``extra``
DB_FIELDS = frozenset(("backend", "statement", "error_type", "sqlstate"))

MAX_STATEMENT_CHARS = 200

NOISY_LOGGERS = ("asyncpg", "aiosqlite", "opentelemetry")

PLAIN_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [%(trace_id)s] %(message)s"

# Everything a bare LogRecord carries, plus what formatting and the filter add
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message", "asctime", "trace_id", "span_id", "taskName",
}


def clip_statement(sql: str, limit: int = MAX_STATEMENT_CHARS) -> str:
    """Collapse whitespace and cut ``sql`` down to ``limit`` characters."""
    text = " ".join(sql.split())
    if len(text) <= limit:
        return text
    return text[:limit - 3] + "..."


def get_span_id() -> Optional[str]:
    span = get_current_span()
    if span and span.get_span_context().is_valid:
        return format(span.get_span_context().span_id, "016x")
    return None


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class StructuredFormatter(logging.Formatter):
    """One JSON object per line with trace ids and a ``db`` section."""

    def __init__(self, service_name: str = DEFAULT_SERVICE_NAME):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
            "trace_id": get_trace_id(),
            "span_id": get_span_id(),
        }

        db: Dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.startswith("_"):
                continue
            if key == "statement" and isinstance(value, str):
                db[key] = clip_statement(value)
            elif key in DB_FIELDS:
                db[key] = _jsonable(value)
            else:
                entry[key] = _jsonable(value)
        if db:
            entry["db"] = db

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False)


class TraceContextFilter(logging.Filter):
    """Stamp trace and span ids on every record for the plain format."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = get_trace_id() or "no-trace"
        record.span_id = get_span_id() or "-"
        return True


def configure_logging(
    level: str = "INFO",
    structured: bool = True,
    service_name: str = DEFAULT_SERVICE_NAME
):
    """
    Route all logging to stdout, as JSON or as plain lines.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        structured: Emit JSON lines via StructuredFormatter
        service_name: Value of the ``service`` field in JSON lines

    Raises:
        ValueError: ``level`` is not a known level name
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric)
    if structured:
        handler.setFormatter(StructuredFormatter(service_name))
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    handler.addFilter(TraceContextFilter())
    root_logger.addHandler(handler)

    # Driver chatter stays out unless it is a problem
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric, logging.WARNING))

    logging.getLogger(__name__).debug(
        f"Logging configured: {service_name}, level={level}, structured={structured}"
    )
