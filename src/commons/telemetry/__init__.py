"""Structured logging, correlation ids and timing for the pipeline."""

from src.commons.telemetry.decorators import LogContext, timed
from src.commons.telemetry.logger import (
    JsonFormatter,
    TextFormatter,
    build_formatter,
    clear_log_context,
    configure_logging,
    get_correlation_id,
    get_log_context,
    get_logger,
    set_correlation_id,
    set_log_context,
)

__all__ = [
    "JsonFormatter",
    "LogContext",
    "TextFormatter",
    "build_formatter",
    "clear_log_context",
    "configure_logging",
    "get_correlation_id",
    "get_log_context",
    "get_logger",
    "set_correlation_id",
    "set_log_context",
    "timed",
]
