"""Pattern and path safety primitives."""

from .paths import PathBlockedError, relative_repo_path, resolve_repo_path
from .patterns import (
    INVALID_PATTERN_SYNTAX,
    PATTERN_LIMIT,
    SECURITY_VIOLATION,
    PatternLimits,
    PatternValidationError,
    validate_filter_options,
    validate_pattern,
    validate_patterns,
)

__all__ = [
    "INVALID_PATTERN_SYNTAX",
    "PATTERN_LIMIT",
    "PathBlockedError",
    "PatternLimits",
    "PatternValidationError",
    "SECURITY_VIOLATION",
    "relative_repo_path",
    "resolve_repo_path",
    "validate_filter_options",
    "validate_pattern",
    "validate_patterns",
]
