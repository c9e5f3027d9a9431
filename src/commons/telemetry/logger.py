"""Structured logging for the pipeline.

Log lines carry three kinds of fields besides the message:

- the correlation id of the request or delivery being handled,
- the scoped log context (`LogContext`, `set_log_context`),
- per-call `extra={...}` fields such as `media_id`, `job_id` or `event`.

Credentials never reach the output: any field whose name looks like a
secret is replaced with `REDACTED`, including inside nested dicts such as a
logged dispatch message.
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any, ClassVar

REDACTED = "***"
SECRET_FIELD_MARKERS = ("secret", "password", "api_key", "apikey", "signature")

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
log_context_var: ContextVar[dict[str, Any]] = ContextVar("log_context")

# Present on every LogRecord; anything else arrived through `extra`
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation id to the current task, generating one if needed.

    Args:
        correlation_id: Id to bind, usually the request id.

    Returns:
        The bound id.
    """
    cid = correlation_id or str(uuid.uuid4())
    correlation_id_var.set(cid)
    return cid


def get_log_context() -> dict[str, Any]:
    """Return a copy of the fields bound to the current task."""
    try:
        return dict(log_context_var.get())
    except LookupError:
        return {}


def set_log_context(**fields: Any) -> None:
    log_context_var.set({**get_log_context(), **fields})


def clear_log_context() -> None:
    log_context_var.set({})


def _is_secret(key: str) -> bool:
    lowered = key.lower().replace("-", "_")
    return any(marker in lowered for marker in SECRET_FIELD_MARKERS)


def redact(fields: dict[str, Any]) -> dict[str, Any]:
    """Mask secret-looking keys, recursing into nested dicts."""
    masked: dict[str, Any] = {}
    for key, value in fields.items():
        if _is_secret(key):
            masked[key] = REDACTED
        elif isinstance(value, dict):
            masked[key] = redact(value)
        else:
            masked[key] = value
    return masked


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    extra = {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}
    return redact(extra)


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=UTC)


class JsonFormatter(logging.Formatter):
    """Renders each record as one JSON object for log shippers."""

    def __init__(self, *, include_path: bool = True) -> None:
        """Create the formatter.

        Args:
            include_path: Add `path` as "file:line" of the call site.
        """
        super().__init__()
        self.include_path = include_path

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _record_time(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.include_path:
            entry["path"] = f"{record.pathname}:{record.lineno}"

        correlation_id = get_correlation_id()
        if correlation_id:
            entry["correlation_id"] = correlation_id

        context = get_log_context()
        if context:
            entry["context"] = redact(context)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update(_record_fields(record))
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Single colored line per record for local development."""

    COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET: ClassVar[str] = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        line = [
            _record_time(record).strftime("%H:%M:%S.%f")[:-3],
            f"{color}{record.levelname:<8}{self.RESET}",
            f"[{record.name}]",
        ]

        correlation_id = get_correlation_id()
        if correlation_id:
            line.append(f"({correlation_id[:8]})")

        line.append(record.getMessage())

        fields = {**redact(get_log_context()), **_record_fields(record)}
        line.extend(f"{key}={fields[key]}" for key in sorted(fields))

        text = " ".join(line)
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


def build_formatter(format_type: str) -> logging.Formatter:
    """Return the formatter for a telemetry log format ('json' or 'text')."""
    if format_type == "json":
        return JsonFormatter()
    return TextFormatter()


def configure_logging(
    level: str = "INFO",
    format_type: str = "json",
    logger_name: str | None = None,
) -> logging.Logger:
    """Route a logger to stdout with a single formatted handler.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format_type: Output format ('json' or 'text').
        logger_name: Logger to configure; the root logger when omitted.

    Returns:
        The configured logger. It no longer propagates to its parents.
    """
    numeric_level = logging.getLevelName(level.upper())
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(build_formatter(format_type))

    logger = logging.getLogger(logger_name)
    logger.setLevel(numeric_level)
    logger.handlers = [handler]
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
