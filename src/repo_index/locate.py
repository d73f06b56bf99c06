"""Locate a project root or an existing index document from a working directory."""

from __future__ import annotations

from pathlib import Path

from repo_index.index.store import DEFAULT_INDEX_FILENAME

PROJECT_MARKERS = (
    DEFAULT_INDEX_FILENAME,
    "package.json",
    ".git",
    "tsconfig.json",
    "pyproject.toml",
    "Cargo.toml",
    "go.mod",
)


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from start and return the first directory holding a project marker."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        if any((directory / marker).exists() for marker in PROJECT_MARKERS):
            return directory
    return None


def find_index_file(
    start: Path | None = None,
    filename: str = DEFAULT_INDEX_FILENAME,
) -> Path | None:
    """Walk up from start and return the nearest index document."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / filename
        if candidate.is_file():
            return candidate
    return None
