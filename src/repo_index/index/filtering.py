"""In-memory filtering of an existing project index."""

from __future__ import annotations

import copy
from dataclasses import dataclass, replace

from repo_index.index.matcher import PatternCache, PatternMatcher
from repo_index.index.models import FilterOptions, ProjectIndex
from repo_index.index.tree import build_tree
from repo_index.logging.events import utc_timestamp
from repo_index.security.patterns import PatternLimits


@dataclass(slots=True, frozen=True)
class FilteringStats:
    """Before/after counts of one in-memory filter."""

    original_file_count: int
    filtered_file_count: int
    removed_file_count: int
    reduction_percentage: float
    original_edge_count: int
    filtered_edge_count: int
    removed_edge_count: int
    edge_reduction_percentage: float


def filter_project_index(
    index: ProjectIndex,
    filters: FilterOptions,
    *,
    cache: PatternCache | None = None,
    limits: PatternLimits | None = None,
) -> ProjectIndex:
    """Return a new index restricted to files passing the filters.

    Edges survive only when both ends survive; dependency lists follow the
    surviving edges. Empty filters return a deep copy.
    """
    matcher = PatternMatcher.from_filters(filters, cache=cache, limits=limits)
    if not filters.include and not filters.exclude:
        return copy.deepcopy(index)
    kept = [path for path in index.nodes if matcher.matches(path)]
    kept_set = set(kept)
    files = {
        path: replace(
            index.files[path],
            dependencies=tuple(
                target for target in index.files[path].dependencies if target in kept_set
            ),
        )
        for path in kept
        if path in index.files
    }
    edges = [
        edge for edge in index.edges if edge.source in kept_set and edge.target in kept_set
    ]
    return ProjectIndex(
        metadata=replace(
            index.metadata,
            updated_at=utc_timestamp(),
            total_files=len(kept),
        ),
        tree=build_tree(kept, index.tree.name),
        nodes=kept,
        edges=edges,
        files=files,
    )


def filtering_stats(original: ProjectIndex, filtered: ProjectIndex) -> FilteringStats:
    original_files = original.metadata.total_files
    filtered_files = filtered.metadata.total_files
    original_edges = len(original.edges)
    filtered_edges = len(filtered.edges)
    return FilteringStats(
        original_file_count=original_files,
        filtered_file_count=filtered_files,
        removed_file_count=original_files - filtered_files,
        reduction_percentage=_percentage(original_files - filtered_files, original_files),
        original_edge_count=original_edges,
        filtered_edge_count=filtered_edges,
        removed_edge_count=original_edges - filtered_edges,
        edge_reduction_percentage=_percentage(original_edges - filtered_edges, original_edges),
    )


def _percentage(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return part / whole * 100
