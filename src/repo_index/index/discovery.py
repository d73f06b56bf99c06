"""Deterministic source file discovery under include/exclude rules."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import asdict, dataclass
from pathlib import Path

from repo_index.index.errors import PatternConflictError, RootNotFoundError
from repo_index.index.ignore import load_ignore_rules
from repo_index.index.matcher import PatternCache, PatternMatcher
from repo_index.index.models import (
    ALL_EXCLUDED,
    INCLUDE_NO_MATCHES,
    IO_ERROR,
    FilterOptions,
    IndexWarning,
)
from repo_index.security.patterns import PatternLimits

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class DiscoveryStats:
    """Deterministic counters for one discovery pass."""

    directories_scanned: int
    directories_pruned: int
    total_candidates: int
    excluded_by_extension: int
    not_included: int
    excluded: int
    selected: int
    total_seconds: float


@dataclass(slots=True, frozen=True)
class DiscoveryResult:
    """Selected paths plus non-fatal warnings from one discovery pass."""

    paths: tuple[str, ...]
    warnings: tuple[IndexWarning, ...]
    stats: DiscoveryStats


def ensure_root(repo_root: Path) -> Path:
    """Return the resolved project root or raise RootNotFoundError."""
    if not repo_root.exists():
        raise RootNotFoundError(str(repo_root), "Project root does not exist")
    if not repo_root.is_dir():
        raise RootNotFoundError(str(repo_root), "Project root is not a directory")
    return repo_root.resolve()


def build_matcher(
    root: Path,
    filters: FilterOptions,
    *,
    cache: PatternCache | None = None,
    limits: PatternLimits | None = None,
    respect_gitignore: bool = True,
) -> PatternMatcher:
    """Validate filters and compile them together with the root's ignore rules."""
    ignore = load_ignore_rules(root, respect_gitignore=respect_gitignore, cache=cache)
    return PatternMatcher.from_filters(filters, cache=cache, ignore=ignore, limits=limits)


def discover_files(
    repo_root: Path,
    filters: FilterOptions | None = None,
    *,
    cache: PatternCache | None = None,
    limits: PatternLimits | None = None,
    respect_gitignore: bool = True,
    strict_patterns: bool = False,
    profile: dict[str, object] | None = None,
) -> DiscoveryResult:
    """Discover indexable source files with deterministic ordering."""
    started = time.perf_counter()
    active = filters or FilterOptions()
    root = ensure_root(repo_root)
    matcher = build_matcher(
        root,
        active,
        cache=cache,
        limits=limits,
        respect_gitignore=respect_gitignore,
    )

    warnings: list[IndexWarning] = []
    selected: set[str] = set()
    include_hits: set[str] = set()
    directories_scanned = 0
    directories_pruned = 0
    total_candidates = 0
    excluded_by_extension = 0
    not_included = 0
    excluded = 0
    included = 0

    stack: list[Path] = [root]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                ordered_entries = sorted(entries, key=lambda item: item.name)
        except OSError as exc:
            if current == root:
                raise RootNotFoundError(
                    str(root), f"Project root cannot be read ({exc.strerror or exc})"
                ) from exc
            warnings.append(
                IndexWarning(
                    IO_ERROR,
                    current.relative_to(root).as_posix(),
                    f"Directory could not be read: {exc.strerror or exc}",
                )
            )
            continue
        directories_scanned += 1
        for entry in reversed(ordered_entries):
            full_path = Path(entry.path)
            relative = full_path.relative_to(root).as_posix()
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = not is_dir and entry.is_file(follow_symlinks=False)
            except OSError as exc:
                warnings.append(
                    IndexWarning(IO_ERROR, relative, f"Entry could not be read: {exc}")
                )
                continue
            if is_dir:
                if matcher.ignore is not None and matcher.ignore.prunes_directory(relative):
                    directories_pruned += 1
                    continue
                stack.append(full_path)
                continue
            if not is_file:
                continue
            total_candidates += 1
            decision = matcher.evaluate(relative)
            if decision.reason == "unsupported_extension":
                excluded_by_extension += 1
                continue
            include_hits.update(matcher.include_hits(relative))
            if not decision.included:
                not_included += 1
                continue
            included += 1
            if decision.excluded:
                excluded += 1
                continue
            selected.add(relative)

    for pattern in matcher.compiled.include:
        if pattern in include_hits:
            continue
        message = f"Include pattern {pattern!r} matched no supported files."
        if strict_patterns:
            raise PatternConflictError(
                INCLUDE_NO_MATCHES, active.include, active.exclude, message
            )
        warnings.append(IndexWarning(INCLUDE_NO_MATCHES, pattern, message))
    if included and not selected:
        message = f"All {included} files matched by include patterns were excluded."
        if strict_patterns:
            raise PatternConflictError(ALL_EXCLUDED, active.include, active.exclude, message)
        warnings.append(IndexWarning(ALL_EXCLUDED, ".", message))

    stats = DiscoveryStats(
        directories_scanned=directories_scanned,
        directories_pruned=directories_pruned,
        total_candidates=total_candidates,
        excluded_by_extension=excluded_by_extension,
        not_included=not_included,
        excluded=excluded,
        selected=len(selected),
        total_seconds=time.perf_counter() - started,
    )
    if profile is not None:
        profile.update(asdict(stats))
    logger.debug(
        "Discovered %d of %d candidate files under %s",
        stats.selected,
        stats.total_candidates,
        root,
    )
    return DiscoveryResult(
        paths=tuple(sorted(selected)),
        warnings=tuple(warnings),
        stats=stats,
    )
