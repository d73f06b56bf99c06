from __future__ import annotations

import json
from pathlib import Path

import pytest

from repo_index.index.errors import (
    IndexFormatError,
    IndexNotFoundError,
    IndexSchemaUnsupportedError,
)
from repo_index.index.models import (
    ClassInfo,
    ConstantInfo,
    Edge,
    FileRecord,
    FilterOptions,
    FunctionSignature,
    ImportInfo,
    IndexMetadata,
    MethodInfo,
    Parameter,
    ProjectIndex,
    PropertyInfo,
)
from repo_index.index.store import dump_index, index_to_payload, load_index, write_index
from repo_index.index.tree import build_tree


def _sample_index() -> ProjectIndex:
    nodes = ["src/app.ts", "src/util.ts"]
    return ProjectIndex(
        metadata=IndexMetadata(
            version=1,
            root="/work/project",
            created_at="2026-01-01T00:00:00.000Z",
            updated_at="2026-01-02T00:00:00.000Z",
            total_files=2,
            filters=FilterOptions(include=("src/**",), exclude=("**/*.test.ts",)),
        ),
        tree=build_tree(nodes, "project"),
        nodes=nodes,
        edges=[Edge("src/app.ts", "src/util.ts")],
        files={
            "src/app.ts": FileRecord(
                imports=(
                    ImportInfo("./util", "import", imported=("format",), is_default=True),
                    ImportInfo("react", "import", is_namespace=True),
                ),
                dependencies=("src/util.ts",),
                functions=(
                    FunctionSignature(
                        name="main",
                        params=(
                            Parameter("name", "string"),
                            Parameter("flags", "string[]", rest=True),
                            Parameter("retries", "number", optional=True),
                        ),
                        return_type="Promise<void>",
                        is_async=True,
                        is_exported=True,
                        is_generator=False,
                    ),
                ),
                classes=(
                    ClassInfo(
                        name="App",
                        is_exported=True,
                        is_abstract=True,
                        extends="Base",
                        implements=("Runner",),
                        methods=(
                            MethodInfo(
                                name="run",
                                params=(),
                                return_type="void",
                                is_async=False,
                                is_static=True,
                                is_abstract=True,
                            ),
                        ),
                        properties=(PropertyInfo("title", "string", is_readonly=True),),
                    ),
                ),
                constants=(ConstantInfo("NAME", None, "literal", True),),
            ),
            "src/util.ts": FileRecord(),
        },
    )


def test_document_uses_fixed_key_order(tmp_path: Path) -> None:
    payload = index_to_payload(_sample_index())

    assert list(payload) == ["metadata", "tree", "nodes", "edges", "files"]
    assert list(payload["metadata"]) == [
        "version",
        "root",
        "createdAt",
        "updatedAt",
        "totalFiles",
        "filters",
    ]
    assert payload["edges"] == [{"from": "src/app.ts", "to": "src/util.ts"}]
    text = dump_index(_sample_index())
    assert text.endswith("}\n")
    assert text.startswith('{\n  "metadata": {\n')


def test_round_trip_is_lossless_and_byte_identical(tmp_path: Path) -> None:
    target = tmp_path / "PROJECT_INDEX.json"
    original = _sample_index()

    write_index(original, target)
    first = target.read_bytes()
    loaded = load_index(target)
    write_index(loaded, target)

    assert loaded == original
    assert target.read_bytes() == first
    assert not target.with_suffix(".json.tmp").exists()


def test_missing_index_raises_not_found(tmp_path: Path) -> None:
    with pytest.raises(IndexNotFoundError) as error:
        load_index(tmp_path / "PROJECT_INDEX.json")

    assert error.value.code == "INDEX_UNAVAILABLE"


def test_schema_version_mismatch_is_explicit(tmp_path: Path) -> None:
    target = tmp_path / "PROJECT_INDEX.json"
    payload = index_to_payload(_sample_index())
    payload["metadata"]["version"] = 999
    target.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(IndexSchemaUnsupportedError) as error:
        load_index(target)

    assert error.value.found == 999
    assert error.value.expected == 1


def test_malformed_documents_raise_format_error(tmp_path: Path) -> None:
    target = tmp_path / "PROJECT_INDEX.json"
    target.write_text("{not json", encoding="utf-8")
    with pytest.raises(IndexFormatError):
        load_index(target)

    payload = index_to_payload(_sample_index())
    payload["nodes"] = "src/app.ts"
    target.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(IndexFormatError, match="nodes"):
        load_index(target)
