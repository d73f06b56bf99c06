"""Structured logging utilities."""

from .events import (
    EVENT_LOGGER_NAME,
    IndexRunEvent,
    emit_run_event,
    new_run_id,
    run_event,
    sanitize_metadata,
    utc_timestamp,
)

__all__ = [
    "EVENT_LOGGER_NAME",
    "IndexRunEvent",
    "emit_run_event",
    "new_run_id",
    "run_event",
    "sanitize_metadata",
    "utc_timestamp",
]
