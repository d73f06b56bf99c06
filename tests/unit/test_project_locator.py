from __future__ import annotations

from pathlib import Path

from repo_index.locate import find_index_file, find_project_root


def test_project_root_is_found_from_a_nested_directory(tmp_path: Path) -> None:
    root = tmp_path / "project"
    nested = root / "src" / "deep"
    nested.mkdir(parents=True)
    (root / "package.json").write_text("{}\n", encoding="utf-8")

    assert find_project_root(nested) == root.resolve()
    assert find_project_root(root) == root.resolve()


def test_index_file_is_found_walking_up(tmp_path: Path) -> None:
    root = tmp_path / "project"
    nested = root / "src"
    nested.mkdir(parents=True)
    index = root / "PROJECT_INDEX.json"
    index.write_text("{}\n", encoding="utf-8")

    assert find_index_file(nested) == index.resolve()
    assert find_index_file(nested, filename="other.json") is None
