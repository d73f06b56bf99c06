from __future__ import annotations

from repo_index.index.graph import (
    dependency_counts,
    find_cycles,
    find_entry_points,
    find_leaf_files,
    project_stats,
)
from repo_index.index.models import Edge, FileRecord, IndexMetadata, ProjectIndex
from repo_index.index.tree import build_tree


def test_dependency_counts_cover_both_directions() -> None:
    counts = dependency_counts([Edge("a.ts", "b.ts"), Edge("a.ts", "c.ts"), Edge("b.ts", "c.ts")])

    assert counts.dependencies == {"a.ts": 2, "b.ts": 1}
    assert counts.dependents == {"b.ts": 1, "c.ts": 2}


def test_cycles_are_reported_with_closing_node() -> None:
    edges = [
        Edge("a.ts", "b.ts"),
        Edge("b.ts", "c.ts"),
        Edge("c.ts", "a.ts"),
        Edge("d.ts", "d.ts"),
        Edge("e.ts", "a.ts"),
    ]

    assert find_cycles(edges) == [("a.ts", "b.ts", "c.ts", "a.ts"), ("d.ts", "d.ts")]
    assert find_cycles([Edge("a.ts", "b.ts"), Edge("b.ts", "c.ts")]) == []


def test_entry_points_and_leaf_files() -> None:
    edges = [Edge("app.ts", "lib.ts"), Edge("lib.ts", "util.ts")]
    nodes = ["app.ts", "lib.ts", "lone.ts", "util.ts"]

    assert find_entry_points(edges, nodes) == ["lone.ts", "util.ts"]
    assert find_leaf_files(edges, nodes) == ["app.ts", "lone.ts"]


def test_project_stats_summarizes_an_index() -> None:
    nodes = ["a.ts", "b.ts", "c.ts"]
    index = ProjectIndex(
        metadata=IndexMetadata(
            version=1,
            root="/work/project",
            created_at="2026-01-01T00:00:00.000Z",
            updated_at="2026-01-01T00:00:00.000Z",
            total_files=3,
        ),
        tree=build_tree(nodes, "project"),
        nodes=nodes,
        edges=[Edge("a.ts", "b.ts"), Edge("b.ts", "a.ts")],
        files={
            "a.ts": FileRecord(dependencies=("b.ts",)),
            "b.ts": FileRecord(dependencies=("a.ts",)),
            "c.ts": FileRecord(),
        },
    )

    stats = project_stats(index)

    assert stats.total_files == 3
    assert stats.total_dependencies == 2
    assert stats.average_dependencies_per_file == 0.67
    assert stats.circular_dependencies == (("a.ts", "b.ts", "a.ts"),)
    assert stats.entry_points == ("c.ts",)
    assert stats.leaf_files == ("c.ts",)
