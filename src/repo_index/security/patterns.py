"""Glob pattern validation with security and complexity limits."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from repo_index.security.paths import WINDOWS_ABSOLUTE_PATTERN

INVALID_PATTERN_SYNTAX = "INVALID_PATTERN_SYNTAX"
SECURITY_VIOLATION = "SECURITY_VIOLATION"
PATTERN_LIMIT = "PATTERN_LIMIT"

MAX_PATTERNS = 100
MAX_PATTERN_LENGTH = 1000
MAX_GLOBSTARS = 10
MAX_EXPANSIONS = 256

_SHELL_SEQUENCES = ("$(", "`", ";", "&", ">", "<")
_UNSUPPORTED_EXTGLOB = ("!(", "+(", "*(", "?(")
_BRACKET_PAIRS = {"[": "]", "{": "}", "(": ")"}


@dataclass(slots=True, frozen=True)
class PatternLimits:
    """Complexity caps applied to every include/exclude pattern set."""

    max_patterns: int = MAX_PATTERNS
    max_pattern_length: int = MAX_PATTERN_LENGTH
    max_globstars: int = MAX_GLOBSTARS


class PatternValidationError(Exception):
    """Raised when a pattern is malformed, unsafe, or too complex."""

    def __init__(self, pattern: str, reason: str, hint: str, code: str) -> None:
        super().__init__(f"Invalid pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason
        self.hint = hint
        self.code = code


def validate_pattern(
    pattern: object,
    kind: str = "include",
    position: int | None = None,
    limits: PatternLimits | None = None,
) -> str:
    """Validate one glob pattern and return it unchanged."""
    active = limits or PatternLimits()
    label = kind if position is None else f"{kind} pattern at index {position}"
    if not isinstance(pattern, str):
        raise PatternValidationError(
            pattern=str(pattern),
            reason=f"{label} must be a string.",
            hint="Pass glob patterns as plain strings such as 'src/**'.",
            code=INVALID_PATTERN_SYNTAX,
        )
    if not pattern.strip():
        raise PatternValidationError(
            pattern=pattern,
            reason=f"{label} cannot be empty.",
            hint="Remove empty entries from the pattern list.",
            code=INVALID_PATTERN_SYNTAX,
        )
    if len(pattern) > active.max_pattern_length:
        raise PatternValidationError(
            pattern=pattern,
            reason=(
                f"{label} is too long (maximum {active.max_pattern_length} characters)."
            ),
            hint="Split the pattern into several shorter, more specific patterns.",
            code=PATTERN_LIMIT,
        )

    segments = pattern.replace("\\", "/").split("/")
    if any(segment == ".." for segment in segments):
        raise PatternValidationError(
            pattern=pattern,
            reason=f"{label}: directory traversal (..) is not allowed.",
            hint="Use patterns relative to the project root without '..' segments.",
            code=SECURITY_VIOLATION,
        )
    if pattern.startswith(("/", "\\")) or WINDOWS_ABSOLUTE_PATTERN.match(pattern):
        raise PatternValidationError(
            pattern=pattern,
            reason=f"{label}: absolute paths are not allowed.",
            hint="Use a project-relative pattern such as 'src/**/*.ts'.",
            code=SECURITY_VIOLATION,
        )
    for sequence in _SHELL_SEQUENCES:
        if sequence in pattern:
            raise PatternValidationError(
                pattern=pattern,
                reason=f"{label}: shell sequence {sequence!r} is not allowed.",
                hint="Remove shell metacharacters; patterns are matched, never executed.",
                code=SECURITY_VIOLATION,
            )
    for operator in _UNSUPPORTED_EXTGLOB:
        if operator in pattern:
            raise PatternValidationError(
                pattern=pattern,
                reason=f"{label}: extglob operator {operator!r} is not supported.",
                hint="Only '@(a|b)' alternation groups are supported.",
                code=INVALID_PATTERN_SYNTAX,
            )
    if _has_unsafe_pipe(pattern):
        raise PatternValidationError(
            pattern=pattern,
            reason=(
                f"{label}: pipe '|' outside of an '@(...)' alternation group is not allowed."
            ),
            hint="Write alternatives as '@(a|b)' or '{a,b}'.",
            code=SECURITY_VIOLATION,
        )
    unbalanced = _first_unbalanced(pattern)
    if unbalanced is not None:
        raise PatternValidationError(
            pattern=pattern,
            reason=f"{label}: unbalanced {unbalanced!r}.",
            hint="Close every '[', '{' and '(' group in the pattern.",
            code=INVALID_PATTERN_SYNTAX,
        )
    if pattern.startswith("!"):
        raise PatternValidationError(
            pattern=pattern,
            reason=f"{label}: negated patterns are not supported.",
            hint="Move the pattern, without '!', to the exclude list.",
            code=INVALID_PATTERN_SYNTAX,
        )
    globstars = pattern.count("**")
    if globstars > active.max_globstars:
        raise PatternValidationError(
            pattern=pattern,
            reason=(
                f"{label}: too many recursive wildcards (**), "
                f"maximum {active.max_globstars} allowed."
            ),
            hint="Collapse repeated '**' segments into one.",
            code=PATTERN_LIMIT,
        )
    if len(_expansions(pattern)) > MAX_EXPANSIONS:
        raise PatternValidationError(
            pattern=pattern,
            reason=f"{label}: expands to more than {MAX_EXPANSIONS} alternatives.",
            hint="Use fewer or smaller '{a,b}' / '@(a|b)' groups.",
            code=PATTERN_LIMIT,
        )
    return pattern


def expand_alternatives(pattern: str) -> list[str]:
    """Expand '{a,b}' and '@(a|b)' groups into plain glob alternatives.

    Groups without a separator are kept literally. Output order follows the
    group options from left to right, without duplicates.
    """
    return list(dict.fromkeys(_expansions(pattern)))


def _expansions(pattern: str) -> list[str]:
    """Expand every group, duplicates included; stops one past MAX_EXPANSIONS."""
    expanded: list[str] = []
    _expand_into(pattern, 0, expanded)
    return expanded


def _expand_into(pattern: str, search_from: int, output: list[str]) -> None:
    if len(output) > MAX_EXPANSIONS:
        return
    group = _find_group(pattern, search_from)
    if group is None:
        output.append(pattern)
        return
    start, body_start, end, separator = group
    options = _split_top_level(pattern[body_start:end], separator)
    if len(options) < 2:
        _expand_into(pattern, end + 1, output)
        return
    prefix = pattern[:start]
    suffix = pattern[end + 1 :]
    for option in options:
        _expand_into(prefix + option + suffix, len(prefix), output)


def _find_group(pattern: str, search_from: int) -> tuple[int, int, int, str] | None:
    index = search_from
    length = len(pattern)
    while index < length:
        char = pattern[index]
        if char == "\\":
            index += 2
            continue
        if char == "[":
            closing = pattern.find("]", index + 1)
            index = length if closing == -1 else closing + 1
            continue
        if char == "{":
            end = _matching_close(pattern, index, "{", "}")
            if end is not None:
                return index, index + 1, end, ","
        if char == "@" and pattern.startswith("@(", index):
            end = _matching_close(pattern, index + 1, "(", ")")
            if end is not None:
                return index, index + 2, end, "|"
        index += 1
    return None


def _matching_close(pattern: str, open_index: int, opener: str, closer: str) -> int | None:
    depth = 0
    index = open_index
    while index < len(pattern):
        char = pattern[index]
        if char == "\\":
            index += 2
            continue
        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return index
        index += 1
    return None


def _split_top_level(body: str, separator: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    escaped = False
    for char in body:
        if escaped:
            current.append(char)
            escaped = False
            continue
        if char == "\\":
            current.append(char)
            escaped = True
            continue
        if char in "{(":
            depth += 1
        elif char in "})":
            depth -= 1
        if char == separator and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def validate_patterns(
    patterns: object,
    kind: str,
    limits: PatternLimits | None = None,
) -> tuple[str, ...]:
    """Validate a whole pattern list; nothing is accepted unless every entry passes."""
    active = limits or PatternLimits()
    if patterns is None:
        return ()
    if isinstance(patterns, str) or not isinstance(patterns, Sequence):
        raise PatternValidationError(
            pattern=str(patterns),
            reason=f"{kind} patterns must be a list of strings.",
            hint="Pass patterns as a list, for example ['src/**'].",
            code=INVALID_PATTERN_SYNTAX,
        )
    if len(patterns) > active.max_patterns:
        raise PatternValidationError(
            pattern=f"{len(patterns)} patterns provided",
            reason=f"Too many {kind} patterns (maximum {active.max_patterns}).",
            hint="Use fewer, more specific patterns.",
            code=PATTERN_LIMIT,
        )
    return tuple(
        validate_pattern(pattern, kind=kind, position=position, limits=active)
        for position, pattern in enumerate(patterns)
    )


def validate_filter_options(
    include: object,
    exclude: object,
    limits: PatternLimits | None = None,
) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Validate include and exclude lists together before any of them is used."""
    return (
        validate_patterns(include, "include", limits),
        validate_patterns(exclude, "exclude", limits),
    )


def _has_unsafe_pipe(pattern: str) -> bool:
    """Return True for a '|' that is not directly inside an '@(...)' group."""
    groups: list[bool] = []
    previous = ""
    for char in pattern:
        if char == "(":
            groups.append(previous == "@")
        elif char == ")":
            if groups:
                groups.pop()
        elif char == "|" and not (groups and groups[-1]):
            return True
        previous = char
    return False


def _first_unbalanced(pattern: str) -> str | None:
    stack: list[str] = []
    escaped = False
    for char in pattern:
        if escaped:
            escaped = False
            continue
        if char == "\\":
            escaped = True
            continue
        if stack and stack[-1] == "[":
            if char == "]":
                stack.pop()
            continue
        if char in _BRACKET_PAIRS:
            stack.append(char)
            continue
        if char in _BRACKET_PAIRS.values():
            if not stack or _BRACKET_PAIRS[stack[-1]] != char:
                return char
            stack.pop()
    if stack:
        return stack[-1]
    return None
