"""Structured run events emitted through the standard logging module."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

EVENT_LOGGER_NAME = "repo_index.events"

_KEPT_STRINGS = {"path", "root", "output"}
_KEPT_INTS = {"files", "edges", "warnings", "removed", "batches", "duration_ms"}
_KEPT_BOOLS = {"strict_patterns", "respect_gitignore", "removed_file"}


@dataclass(slots=True, frozen=True)
class IndexRunEvent:
    """Sanitized summary of one scan, update, load or write."""

    timestamp: str
    run_id: str
    operation: str
    ok: bool
    error_code: str | None
    metadata: dict[str, object]


def utc_timestamp() -> str:
    """Return an ISO-8601 UTC timestamp."""
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_run_id() -> str:
    return uuid.uuid4().hex


def sanitize_metadata(values: dict[str, object]) -> dict[str, object]:
    """Keep known scalar fields; reduce everything else to its shape."""
    sanitized: dict[str, object] = {}
    for key in sorted(values.keys()):
        value = values[key]
        if key in _KEPT_STRINGS and isinstance(value, str):
            sanitized[key] = value
            continue
        if key in _KEPT_INTS and isinstance(value, int) and not isinstance(value, bool):
            sanitized[key] = value
            continue
        if key in _KEPT_BOOLS and isinstance(value, bool):
            sanitized[key] = value
            continue
        if isinstance(value, (int, float, bool)) or value is None:
            sanitized[key] = value
            continue
        if isinstance(value, str):
            sanitized[f"{key}_present"] = True
            sanitized[f"{key}_length"] = len(value)
            continue
        if isinstance(value, (list, tuple)):
            sanitized[f"{key}_count"] = len(value)
            continue
        if isinstance(value, dict):
            sanitized[f"{key}_keys"] = sorted(str(k) for k in value.keys())
            continue
        sanitized[f"{key}_type"] = type(value).__name__
    return sanitized


def emit_run_event(event: IndexRunEvent, logger: logging.Logger | None = None) -> None:
    """Log one event as a single JSON object; failures log at WARNING."""
    target = logger or logging.getLogger(EVENT_LOGGER_NAME)
    level = logging.INFO if event.ok else logging.WARNING
    if not target.isEnabledFor(level):
        return
    target.log(level, json.dumps(asdict(event), sort_keys=True))


def run_event(
    run_id: str,
    operation: str,
    ok: bool,
    error_code: str | None = None,
    **metadata: object,
) -> IndexRunEvent:
    return IndexRunEvent(
        timestamp=utc_timestamp(),
        run_id=run_id,
        operation=operation,
        ok=ok,
        error_code=error_code,
        metadata=sanitize_metadata(metadata),
    )
