"""Compiled include/exclude matchers and their bounded cache."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, TypeVar

import pathspec

from repo_index.index.models import SUPPORTED_EXTENSIONS, FilterOptions
from repo_index.security.patterns import (
    INVALID_PATTERN_SYNTAX,
    PatternLimits,
    PatternValidationError,
    expand_alternatives,
    validate_filter_options,
)

if TYPE_CHECKING:
    from repo_index.index.ignore import IgnoreRules

DEFAULT_CACHE_SIZE = 500
DEFAULT_CACHE_TTL_SECONDS = 600.0

_T = TypeVar("_T")


@dataclass(slots=True, frozen=True)
class CacheStats:
    """Point-in-time counters for a pattern cache."""

    hits: int
    misses: int
    size: int
    max_size: int

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        if lookups == 0:
            return 0.0
        return self.hits / lookups


class PatternCache:
    """Thread-safe LRU of compiled pattern sets with per-entry expiry."""

    def __init__(
        self,
        max_size: int = DEFAULT_CACHE_SIZE,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("PatternCache max_size must be >= 1.")
        if ttl_seconds <= 0:
            raise ValueError("PatternCache ttl_seconds must be > 0.")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[tuple[object, ...], tuple[float, object]] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_or_compile(self, key: tuple[object, ...], factory: Callable[[], _T]) -> _T:
        """Return the cached value for key, compiling and storing it on a miss.

        The factory runs outside the lock; concurrent misses on the same key
        each compile and the last store wins.
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                stored_at, value = entry
                if now - stored_at < self.ttl_seconds:
                    self._entries.move_to_end(key)
                    self._hits += 1
                    return value  # type: ignore[return-value]
                del self._entries[key]
            self._misses += 1
        compiled = factory()
        with self._lock:
            self._entries[key] = (self._clock(), compiled)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)
        return compiled

    def cleanup(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [
                key
                for key, (stored_at, _) in self._entries.items()
                if now - stored_at >= self.ttl_seconds
            ]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        """Drop every entry and reset counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                size=len(self._entries),
                max_size=self.max_size,
            )


def normalize_pattern_set(patterns: Iterable[str]) -> tuple[str, ...]:
    """Trim, deduplicate and sort patterns so equivalent sets share a key."""
    return tuple(sorted({pattern.strip() for pattern in patterns if pattern.strip()}))


def compile_globs(patterns: Iterable[str]) -> pathspec.PathSpec:
    """Compile globs, expanding alternation groups, with gitignore wildmatch rules."""
    lines: list[str] = []
    for pattern in patterns:
        lines.extend(expand_alternatives(pattern))
    try:
        return pathspec.GitIgnoreSpec.from_lines(lines)
    except ValueError as exc:
        raise PatternValidationError(
            pattern=", ".join(lines),
            reason=f"Pattern could not be compiled: {exc}",
            hint="Check wildcard and bracket syntax.",
            code=INVALID_PATTERN_SYNTAX,
        ) from exc


@dataclass(slots=True, frozen=True)
class CompiledFilters:
    """Compiled form of one normalized include/exclude pair."""

    include: tuple[str, ...]
    exclude: tuple[str, ...]
    include_spec: pathspec.PathSpec | None
    exclude_spec: pathspec.PathSpec | None
    include_each: tuple[tuple[str, pathspec.PathSpec], ...]


def compile_filters(
    filters: FilterOptions,
    cache: PatternCache | None = None,
) -> CompiledFilters:
    include = normalize_pattern_set(filters.include)
    exclude = normalize_pattern_set(filters.exclude)

    def factory() -> CompiledFilters:
        return CompiledFilters(
            include=include,
            exclude=exclude,
            include_spec=compile_globs(include) if include else None,
            exclude_spec=compile_globs(exclude) if exclude else None,
            include_each=tuple((pattern, compile_globs((pattern,))) for pattern in include),
        )

    if cache is None:
        return factory()
    return cache.get_or_compile(("filters", include, exclude), factory)


def has_supported_extension(relative_path: str) -> bool:
    return PurePosixPath(relative_path).suffix.lower() in SUPPORTED_EXTENSIONS


@dataclass(slots=True, frozen=True)
class MatchDecision:
    """Outcome of evaluating one relative path against filters and ignore rules."""

    path: str
    included: bool
    excluded: bool
    reason: str

    @property
    def selected(self) -> bool:
        return self.included and not self.excluded


class PatternMatcher:
    """Evaluate relative paths against compiled filters and ignore rules."""

    def __init__(self, compiled: CompiledFilters, ignore: IgnoreRules | None = None) -> None:
        self.compiled = compiled
        self.ignore = ignore

    @classmethod
    def from_filters(
        cls,
        filters: FilterOptions,
        *,
        cache: PatternCache | None = None,
        ignore: IgnoreRules | None = None,
        limits: PatternLimits | None = None,
    ) -> PatternMatcher:
        """Validate every pattern, then compile through the cache."""
        validate_filter_options(filters.include, filters.exclude, limits)
        return cls(compile_filters(filters, cache), ignore)

    def evaluate(self, relative_path: str) -> MatchDecision:
        supported = has_supported_extension(relative_path)
        if not supported:
            included, reason = False, "unsupported_extension"
        elif self.compiled.include_spec is None:
            included, reason = True, "selected"
        elif self.compiled.include_spec.match_file(relative_path):
            included, reason = True, "selected"
        else:
            included, reason = False, "no_include_match"

        excluded = False
        if self.compiled.exclude_spec is not None and self.compiled.exclude_spec.match_file(
            relative_path
        ):
            excluded = True
            reason = "excluded" if included else reason
        elif self.ignore is not None and self.ignore.is_ignored(relative_path):
            excluded = True
            reason = "ignored" if included else reason
        return MatchDecision(
            path=relative_path,
            included=included,
            excluded=excluded,
            reason=reason,
        )

    def matches(self, relative_path: str) -> bool:
        return self.evaluate(relative_path).selected

    def include_hits(self, relative_path: str) -> tuple[str, ...]:
        """Return include patterns matching a supported path."""
        if not has_supported_extension(relative_path):
            return ()
        return tuple(
            pattern
            for pattern, spec in self.compiled.include_each
            if spec.match_file(relative_path)
        )
