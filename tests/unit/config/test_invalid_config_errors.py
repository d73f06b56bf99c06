from __future__ import annotations

from pathlib import Path

import pytest

from repo_index.config import ConfigOverrides, load_effective_config


def _write_config(root: Path, *lines: str) -> None:
    (root / "repo_index.toml").write_text("\n".join(lines), encoding="utf-8")


def test_invalid_field_type_names_the_field(tmp_path: Path) -> None:
    _write_config(tmp_path, "[index]", 'max_file_bytes = "big"')

    with pytest.raises(ValueError, match="index.max_file_bytes"):
        load_effective_config(tmp_path)


def test_invalid_section_type_raises_value_error(tmp_path: Path) -> None:
    _write_config(tmp_path, 'index = "not-a-table"')

    with pytest.raises(ValueError, match="section 'index'"):
        load_effective_config(tmp_path)


def test_pattern_lists_must_hold_strings(tmp_path: Path) -> None:
    _write_config(tmp_path, "[index]", "include = [1, 2]")

    with pytest.raises(ValueError, match="index.include"):
        load_effective_config(tmp_path)


def test_booleans_are_not_integers(tmp_path: Path) -> None:
    _write_config(tmp_path, "[workers]", "max_workers = true")

    with pytest.raises(ValueError, match="workers.max_workers"):
        load_effective_config(tmp_path)


def test_output_outside_root_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="overrides.output"):
        load_effective_config(tmp_path, ConfigOverrides(output="../index.json"))
