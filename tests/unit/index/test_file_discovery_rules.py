from __future__ import annotations

import os
from pathlib import Path

import pytest

from repo_index.index.discovery import discover_files
from repo_index.index.errors import PatternConflictError, RootNotFoundError
from repo_index.index.models import ALL_EXCLUDED, INCLUDE_NO_MATCHES, FilterOptions


def _write(root: Path, relative: str, text: str = "export {};\n") -> None:
    target = root / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")


def test_discovery_is_sorted_and_skips_builtin_directories(tmp_path: Path) -> None:
    for relative in (
        "src/b.ts",
        "src/a.tsx",
        "src/nested/c.mjs",
        "index.js",
        "README.md",
        "node_modules/pkg/index.js",
        "dist/out.js",
        ".git/hooks/pre-commit.js",
        ".cache/file.ts",
        "packages/app/build/gen.js",
    ):
        _write(tmp_path, relative)

    result = discover_files(tmp_path)

    assert result.paths == ("index.js", "src/a.tsx", "src/b.ts", "src/nested/c.mjs")
    assert result.warnings == ()
    assert result.stats.selected == 4
    assert result.stats.excluded_by_extension == 1
    assert result.stats.directories_pruned >= 4


def test_gitignore_entries_are_excluded(tmp_path: Path) -> None:
    _write(tmp_path, ".gitignore", "generated/\n*.gen.ts\n")
    _write(tmp_path, "src/a.ts")
    _write(tmp_path, "src/a.gen.ts")
    _write(tmp_path, "generated/b.ts")

    assert discover_files(tmp_path).paths == ("src/a.ts",)
    assert discover_files(tmp_path, respect_gitignore=False).paths == (
        "generated/b.ts",
        "src/a.gen.ts",
        "src/a.ts",
    )


def test_include_without_matches_is_a_warning(tmp_path: Path) -> None:
    _write(tmp_path, "src/a.ts")

    result = discover_files(tmp_path, FilterOptions(include=("src/**", "lib/**")))

    assert result.paths == ("src/a.ts",)
    assert [(warning.code, warning.path) for warning in result.warnings] == [
        (INCLUDE_NO_MATCHES, "lib/**")
    ]


def test_excluding_everything_is_a_warning(tmp_path: Path) -> None:
    _write(tmp_path, "src/a.ts")
    _write(tmp_path, "src/b.ts")

    result = discover_files(tmp_path, FilterOptions(include=("src/**",), exclude=("src/**",)))

    assert result.paths == ()
    assert [warning.code for warning in result.warnings] == [ALL_EXCLUDED]


def test_strict_patterns_raise_pattern_conflict(tmp_path: Path) -> None:
    _write(tmp_path, "src/a.ts")

    with pytest.raises(PatternConflictError) as error:
        discover_files(tmp_path, FilterOptions(include=("lib/**",)), strict_patterns=True)

    assert error.value.conflict == INCLUDE_NO_MATCHES
    assert error.value.code == "PATTERN_CONFLICT"


def test_empty_tree_is_a_valid_result(tmp_path: Path) -> None:
    result = discover_files(tmp_path)

    assert result.paths == ()
    assert result.warnings == ()


def test_missing_root_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(RootNotFoundError):
        discover_files(tmp_path / "missing")

    _write(tmp_path, "file.ts")
    with pytest.raises(RootNotFoundError):
        discover_files(tmp_path / "file.ts")


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_symbolic_links_are_not_followed(tmp_path: Path) -> None:
    root = tmp_path / "repo"
    outside = tmp_path / "outside"
    _write(outside, "secret.ts")
    _write(root, "src/a.ts")
    try:
        (root / "linked").symlink_to(outside, target_is_directory=True)
        (root / "src" / "alias.ts").symlink_to(root / "src" / "a.ts")
    except OSError:
        pytest.skip("symlink creation not permitted")

    assert discover_files(root).paths == ("src/a.ts",)


def test_profile_receives_discovery_counters(tmp_path: Path) -> None:
    _write(tmp_path, "src/a.ts")
    profile: dict[str, object] = {}

    discover_files(tmp_path, profile=profile)

    assert profile["selected"] == 1
    assert profile["total_candidates"] == 1
    assert "total_seconds" in profile
