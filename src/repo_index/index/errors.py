"""Fatal configuration errors raised before or instead of indexing work."""

from __future__ import annotations

from dataclasses import dataclass

from repo_index.security import (
    INVALID_PATTERN_SYNTAX,
    PATTERN_LIMIT,
    SECURITY_VIOLATION,
    PathBlockedError,
    PatternValidationError,
)

PATTERN_CONFLICT = "PATTERN_CONFLICT"
FILESYSTEM_ERROR = "FILESYSTEM_ERROR"
INDEX_UNAVAILABLE = "INDEX_UNAVAILABLE"
INVALID_CONFIG = "INVALID_CONFIG"

EXIT_CODES = {
    INVALID_PATTERN_SYNTAX: 10,
    SECURITY_VIOLATION: 11,
    PATTERN_CONFLICT: 12,
    FILESYSTEM_ERROR: 13,
    PATTERN_LIMIT: 14,
    INDEX_UNAVAILABLE: 15,
    INVALID_CONFIG: 16,
}
UNEXPECTED_EXIT_CODE = 99


class RootNotFoundError(Exception):
    """Raised when the project root is missing, not a directory, or unreadable."""

    code = FILESYSTEM_ERROR

    def __init__(self, root: str, reason: str) -> None:
        super().__init__(f"{reason}: {root}")
        self.root = root
        self.reason = reason
        self.hint = "Point the indexer at an existing, readable project directory."


class PatternConflictError(Exception):
    """Raised in strict mode when filters match nothing or exclude everything."""

    code = PATTERN_CONFLICT

    def __init__(
        self,
        conflict: str,
        include: tuple[str, ...],
        exclude: tuple[str, ...],
        message: str,
    ) -> None:
        super().__init__(message)
        self.conflict = conflict
        self.include = include
        self.exclude = exclude
        self.reason = message
        self.hint = "Review include/exclude patterns, or disable strict_patterns."


class IndexNotFoundError(Exception):
    """Raised when an update is requested but no persisted index exists."""

    code = INDEX_UNAVAILABLE

    def __init__(self, path: str) -> None:
        super().__init__(f"No index found at {path}")
        self.path = path
        self.reason = "Index file does not exist."
        self.hint = "Run a full scan before requesting incremental updates."


class IndexFormatError(Exception):
    """Raised when a persisted index cannot be decoded into the index model."""

    code = INDEX_UNAVAILABLE

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Malformed index at {path}: {reason}")
        self.path = path
        self.reason = reason
        self.hint = "Delete the index file and run a full scan."


@dataclass(slots=True, frozen=True)
class IndexSchemaUnsupportedError(Exception):
    """Raised when stored index schema does not match supported version."""

    found: int
    expected: int

    @property
    def code(self) -> str:
        return INDEX_UNAVAILABLE

    @property
    def reason(self) -> str:
        return f"Index schema version {self.found} is not supported (expected {self.expected})."

    @property
    def hint(self) -> str:
        return "Delete the index file and run a full scan."


def exit_code_for(error: BaseException) -> int:
    """Map a fatal error to the process exit code a host should use."""
    if isinstance(error, PatternValidationError):
        return EXIT_CODES.get(error.code, UNEXPECTED_EXIT_CODE)
    if isinstance(error, PathBlockedError):
        return EXIT_CODES[SECURITY_VIOLATION]
    if isinstance(error, ValueError):
        return EXIT_CODES[INVALID_CONFIG]
    code = getattr(error, "code", None)
    if isinstance(code, str):
        return EXIT_CODES.get(code, UNEXPECTED_EXIT_CODE)
    return UNEXPECTED_EXIT_CODE
