"""Dependency graph statistics over a project index."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from repo_index.index.models import Edge, ProjectIndex


@dataclass(slots=True, frozen=True)
class DependencyCounts:
    """Outgoing and incoming edge counts per file."""

    dependencies: dict[str, int]
    dependents: dict[str, int]


@dataclass(slots=True, frozen=True)
class ProjectStats:
    """Summary statistics of one index."""

    total_files: int
    total_dependencies: int
    average_dependencies_per_file: float
    circular_dependencies: tuple[tuple[str, ...], ...]
    entry_points: tuple[str, ...]
    leaf_files: tuple[str, ...]


def dependency_counts(edges: Iterable[Edge]) -> DependencyCounts:
    outgoing: Counter[str] = Counter()
    incoming: Counter[str] = Counter()
    for edge in edges:
        outgoing[edge.source] += 1
        incoming[edge.target] += 1
    return DependencyCounts(dependencies=dict(outgoing), dependents=dict(incoming))


def find_cycles(edges: Iterable[Edge]) -> list[tuple[str, ...]]:
    """Return one cycle per back edge found by a depth-first walk in sorted order.

    Each cycle starts and ends with the same path.
    """
    graph: dict[str, list[str]] = {}
    for edge in edges:
        graph.setdefault(edge.source, []).append(edge.target)
    for targets in graph.values():
        targets.sort()

    cycles: list[tuple[str, ...]] = []
    visited: set[str] = set()
    for start in sorted(graph):
        if start in visited:
            continue
        visited.add(start)
        path = [start]
        on_path = {start}
        stack: list[Iterator[str]] = [iter(graph.get(start, ()))]
        while stack:
            target = next(stack[-1], None)
            if target is None:
                stack.pop()
                on_path.discard(path.pop())
                continue
            if target in on_path:
                cycles.append((*path[path.index(target) :], target))
                continue
            if target in visited:
                continue
            visited.add(target)
            path.append(target)
            on_path.add(target)
            stack.append(iter(graph.get(target, ())))
    return cycles


def find_entry_points(edges: Iterable[Edge], nodes: Iterable[str]) -> list[str]:
    """Files with no outgoing dependency edges."""
    sources = {edge.source for edge in edges}
    return [node for node in nodes if node not in sources]


def find_leaf_files(edges: Iterable[Edge], nodes: Iterable[str]) -> list[str]:
    """Files no other indexed file imports."""
    targets = {edge.target for edge in edges}
    return [node for node in nodes if node not in targets]


def project_stats(index: ProjectIndex) -> ProjectStats:
    counts = dependency_counts(index.edges)
    average = 0.0
    if index.nodes:
        average = round(sum(counts.dependencies.values()) / len(index.nodes), 2)
    return ProjectStats(
        total_files=index.metadata.total_files,
        total_dependencies=len(index.edges),
        average_dependencies_per_file=average,
        circular_dependencies=tuple(find_cycles(index.edges)),
        entry_points=tuple(find_entry_points(index.edges, index.nodes)),
        leaf_files=tuple(find_leaf_files(index.edges, index.nodes)),
    )
