"""Path normalization helpers for project-scoped update targets."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Final

WINDOWS_ABSOLUTE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z]:[\\/]")


class PathBlockedError(Exception):
    """Raised when a requested path points outside the project root."""

    def __init__(self, reason: str, hint: str) -> None:
        super().__init__(reason)
        self.reason = reason
        self.hint = hint


def _normalize_relative_input(candidate: str) -> tuple[str, bool]:
    """Normalize path separators and detect absolute-style inputs."""
    normalized = candidate.replace("\\", "/")
    if normalized.startswith("/"):
        return normalized, True
    if WINDOWS_ABSOLUTE_PATTERN.match(normalized):
        return normalized, True
    return normalized, False


def relative_repo_path(repo_root: Path, candidate: str | os.PathLike[str]) -> str:
    """Return the POSIX project-relative form of an absolute or relative path.

    The final path component is never resolved, so a symbolic link keeps its
    own name instead of being replaced by its target.
    """
    root = repo_root.resolve()
    normalized, is_absolute_style = _normalize_relative_input(os.fspath(candidate))

    if not normalized.strip():
        raise PathBlockedError(
            reason="Path is empty.",
            hint="Provide a project-relative path such as 'src/module.ts'.",
        )

    if is_absolute_style:
        absolute = Path(os.path.normpath(normalized))
        for base in (absolute, absolute.parent.resolve() / absolute.name):
            if base.is_relative_to(root) and base != root:
                return base.relative_to(root).as_posix()
        raise PathBlockedError(
            reason="Absolute path is outside the project root.",
            hint="Use a path located under the indexed project root.",
        )

    parts = [part for part in normalized.split("/") if part not in ("", ".")]
    if any(part == ".." for part in parts):
        raise PathBlockedError(
            reason="Path traversal is blocked.",
            hint="Remove '..' segments and use a project-relative path.",
        )
    if not parts:
        raise PathBlockedError(
            reason="Path refers to the project root itself.",
            hint="Provide the path of a single source file.",
        )
    return "/".join(parts)


def resolve_repo_path(repo_root: Path, candidate: str | os.PathLike[str]) -> Path:
    """Resolve a candidate path to its location under the project root."""
    return repo_root.resolve() / relative_repo_path(repo_root, candidate)
