from __future__ import annotations

import json
import logging

import pytest

from repo_index.logging import (
    EVENT_LOGGER_NAME,
    emit_run_event,
    run_event,
    sanitize_metadata,
    utc_timestamp,
)


def test_sanitize_keeps_counts_and_drops_pattern_text() -> None:
    sanitized = sanitize_metadata(
        {
            "files": 3,
            "path": "src/a.ts",
            "include": ["src/**", "lib/**"],
            "options": {"b": 1, "a": 2},
            "query": "secret text",
            "strict_patterns": False,
        }
    )

    assert sanitized == {
        "files": 3,
        "include_count": 2,
        "options_keys": ["a", "b"],
        "path": "src/a.ts",
        "query_length": 11,
        "query_present": True,
        "strict_patterns": False,
    }


def test_timestamp_is_utc_with_milliseconds() -> None:
    stamp = utc_timestamp()

    assert stamp.endswith("Z")
    assert len(stamp) == len("2026-01-01T00:00:00.000Z")


def test_events_are_logged_as_single_json_objects(caplog: pytest.LogCaptureFixture) -> None:
    event = run_event("run-1", "scan", ok=True, files=2, exclude=["dist/**"])

    with caplog.at_level(logging.INFO, logger=EVENT_LOGGER_NAME):
        emit_run_event(event)

    (record,) = caplog.records
    assert record.levelno == logging.INFO
    payload = json.loads(record.getMessage())
    assert list(payload) == ["error_code", "metadata", "ok", "operation", "run_id", "timestamp"]
    assert payload["metadata"] == {"exclude_count": 1, "files": 2}


def test_failed_runs_log_at_warning(caplog: pytest.LogCaptureFixture) -> None:
    event = run_event("run-2", "update", ok=False, error_code="SECURITY_VIOLATION")

    with caplog.at_level(logging.INFO, logger=EVENT_LOGGER_NAME):
        emit_run_event(event)

    (record,) = caplog.records
    assert record.levelno == logging.WARNING
    assert json.loads(record.getMessage())["error_code"] == "SECURITY_VIOLATION"
