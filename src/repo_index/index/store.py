"""JSON persistence for the project index."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from repo_index.index.errors import (
    IndexFormatError,
    IndexNotFoundError,
    IndexSchemaUnsupportedError,
)
from repo_index.index.models import (
    INDEX_SCHEMA_VERSION,
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
    TreeNode,
)

DEFAULT_INDEX_FILENAME = "PROJECT_INDEX.json"

_IMPORT_KINDS = {"import", "export", "require", "dynamic-import"}
_INIT_KINDS = {"literal", "function", "class", "object", "array", "unknown"}


def index_to_payload(index: ProjectIndex) -> dict[str, object]:
    """Convert an index to its JSON document with fixed key order."""
    metadata = index.metadata
    return {
        "metadata": {
            "version": metadata.version,
            "root": metadata.root,
            "createdAt": metadata.created_at,
            "updatedAt": metadata.updated_at,
            "totalFiles": metadata.total_files,
            "filters": {
                "include": list(metadata.filters.include),
                "exclude": list(metadata.filters.exclude),
            },
        },
        "tree": _tree_payload(index.tree),
        "nodes": list(index.nodes),
        "edges": [{"from": edge.source, "to": edge.target} for edge in index.edges],
        "files": {path: record_to_payload(record) for path, record in index.files.items()},
    }


def record_to_payload(record: FileRecord) -> dict[str, object]:
    return {
        "imports": [_import_payload(item) for item in record.imports],
        "dependencies": list(record.dependencies),
        "functions": [_function_payload(item) for item in record.functions],
        "classes": [_class_payload(item) for item in record.classes],
        "constants": [_constant_payload(item) for item in record.constants],
    }


def _tree_payload(node: TreeNode) -> dict[str, object]:
    payload: dict[str, object] = {"name": node.name, "kind": node.kind}
    if node.kind == "directory":
        payload["children"] = [_tree_payload(child) for child in node.children or []]
    return payload


def _import_payload(item: ImportInfo) -> dict[str, object]:
    payload: dict[str, object] = {"from": item.source, "kind": item.kind}
    if item.imported:
        payload["imported"] = list(item.imported)
    if item.is_default:
        payload["isDefault"] = True
    if item.is_namespace:
        payload["isNamespace"] = True
    return payload


def _params_payload(params: tuple[Parameter, ...]) -> list[dict[str, object]]:
    output: list[dict[str, object]] = []
    for param in params:
        payload: dict[str, object] = {"name": param.name}
        if param.type is not None:
            payload["type"] = param.type
        if param.optional:
            payload["optional"] = True
        if param.rest:
            payload["rest"] = True
        output.append(payload)
    return output


def _function_payload(item: FunctionSignature) -> dict[str, object]:
    payload: dict[str, object] = {"name": item.name, "params": _params_payload(item.params)}
    if item.return_type is not None:
        payload["returnType"] = item.return_type
    payload["isAsync"] = item.is_async
    payload["isExported"] = item.is_exported
    if item.is_generator:
        payload["isGenerator"] = True
    return payload


def _method_payload(item: MethodInfo) -> dict[str, object]:
    payload: dict[str, object] = {"name": item.name, "params": _params_payload(item.params)}
    if item.return_type is not None:
        payload["returnType"] = item.return_type
    payload["isAsync"] = item.is_async
    for key, flag in (
        ("isStatic", item.is_static),
        ("isPrivate", item.is_private),
        ("isProtected", item.is_protected),
        ("isAbstract", item.is_abstract),
    ):
        if flag:
            payload[key] = True
    return payload


def _property_payload(item: PropertyInfo) -> dict[str, object]:
    payload: dict[str, object] = {"name": item.name}
    if item.type is not None:
        payload["type"] = item.type
    for key, flag in (
        ("isStatic", item.is_static),
        ("isPrivate", item.is_private),
        ("isProtected", item.is_protected),
        ("isReadonly", item.is_readonly),
    ):
        if flag:
            payload[key] = True
    return payload


def _class_payload(item: ClassInfo) -> dict[str, object]:
    payload: dict[str, object] = {"name": item.name, "isExported": item.is_exported}
    if item.is_abstract:
        payload["isAbstract"] = True
    if item.extends is not None:
        payload["extends"] = item.extends
    if item.implements:
        payload["implements"] = list(item.implements)
    payload["methods"] = [_method_payload(method) for method in item.methods]
    payload["properties"] = [_property_payload(prop) for prop in item.properties]
    return payload


def _constant_payload(item: ConstantInfo) -> dict[str, object]:
    payload: dict[str, object] = {"name": item.name}
    if item.type is not None:
        payload["type"] = item.type
    payload["initKind"] = item.init_kind
    payload["isExported"] = item.is_exported
    return payload


def dump_index(index: ProjectIndex) -> str:
    """Render the persisted document text, trailing newline included."""
    return json.dumps(index_to_payload(index), indent=2, ensure_ascii=False) + "\n"


def write_index(index: ProjectIndex, path: Path) -> Path:
    """Write the index atomically through a sibling temp file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8", newline="\n") as handle:
        handle.write(dump_index(index))
    tmp.replace(path)
    return path


def load_index(path: Path) -> ProjectIndex:
    """Load and validate a persisted index document."""
    if not path.is_file():
        raise IndexNotFoundError(str(path))
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise IndexFormatError(str(path), str(exc)) from exc
    return payload_to_index(payload, source=str(path))


def payload_to_index(payload: object, source: str = "<memory>") -> ProjectIndex:
    decoder = _Decoder(source)
    document = decoder.mapping(payload, "document")
    metadata = decoder.mapping(document.get("metadata"), "metadata")
    version = metadata.get("version")
    if not isinstance(version, int) or isinstance(version, bool):
        raise IndexSchemaUnsupportedError(found=-1, expected=INDEX_SCHEMA_VERSION)
    if version != INDEX_SCHEMA_VERSION:
        raise IndexSchemaUnsupportedError(found=version, expected=INDEX_SCHEMA_VERSION)
    filters = decoder.mapping(metadata.get("filters", {}), "metadata.filters")
    files_payload = decoder.mapping(document.get("files"), "files")
    return ProjectIndex(
        metadata=IndexMetadata(
            version=version,
            root=decoder.string(metadata.get("root"), "metadata.root"),
            created_at=decoder.string(metadata.get("createdAt"), "metadata.createdAt"),
            updated_at=decoder.string(metadata.get("updatedAt"), "metadata.updatedAt"),
            total_files=decoder.integer(metadata.get("totalFiles"), "metadata.totalFiles"),
            filters=FilterOptions(
                include=decoder.strings(filters.get("include", []), "metadata.filters.include"),
                exclude=decoder.strings(filters.get("exclude", []), "metadata.filters.exclude"),
            ),
        ),
        tree=decoder.tree(document.get("tree"), "tree"),
        nodes=list(decoder.strings(document.get("nodes"), "nodes")),
        edges=[
            Edge(
                source=decoder.string(item.get("from"), f"edges[{position}].from"),
                target=decoder.string(item.get("to"), f"edges[{position}].to"),
            )
            for position, item in enumerate(decoder.mappings(document.get("edges"), "edges"))
        ],
        files={
            path: decoder.record(value, f"files[{path}]")
            for path, value in files_payload.items()
        },
    )


class _Decoder:
    """Strict field readers that report the failing location."""

    def __init__(self, source: str) -> None:
        self.source = source

    def fail(self, where: str, expected: str) -> IndexFormatError:
        return IndexFormatError(self.source, f"{where} must be {expected}")

    def mapping(self, value: object, where: str) -> Mapping[str, Any]:
        if not isinstance(value, dict):
            raise self.fail(where, "an object")
        return value

    def mappings(self, value: object, where: str) -> list[Mapping[str, Any]]:
        if not isinstance(value, list):
            raise self.fail(where, "a list")
        return [self.mapping(item, f"{where}[{position}]") for position, item in enumerate(value)]

    def string(self, value: object, where: str) -> str:
        if not isinstance(value, str):
            raise self.fail(where, "a string")
        return value

    def optional_string(self, value: object, where: str) -> str | None:
        if value is None:
            return None
        return self.string(value, where)

    def strings(self, value: object, where: str) -> tuple[str, ...]:
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise self.fail(where, "a list of strings")
        return tuple(value)

    def integer(self, value: object, where: str) -> int:
        if not isinstance(value, int) or isinstance(value, bool):
            raise self.fail(where, "an integer")
        return value

    def flag(self, value: object, where: str) -> bool:
        if value is None:
            return False
        if not isinstance(value, bool):
            raise self.fail(where, "a boolean")
        return value

    def tree(self, value: object, where: str) -> TreeNode:
        payload = self.mapping(value, where)
        kind = payload.get("kind")
        if kind not in {"directory", "file"}:
            raise self.fail(f"{where}.kind", "'directory' or 'file'")
        name = self.string(payload.get("name"), f"{where}.name")
        if kind == "file":
            return TreeNode(name=name, kind="file")
        children_payload = payload.get("children", [])
        if not isinstance(children_payload, list):
            raise self.fail(f"{where}.children", "a list")
        return TreeNode(
            name=name,
            kind="directory",
            children=[
                self.tree(child, f"{where}.children[{position}]")
                for position, child in enumerate(children_payload)
            ],
        )

    def params(self, value: object, where: str) -> tuple[Parameter, ...]:
        return tuple(
            Parameter(
                name=self.string(item.get("name"), f"{where}[{position}].name"),
                type=self.optional_string(item.get("type"), f"{where}[{position}].type"),
                optional=self.flag(item.get("optional"), f"{where}[{position}].optional"),
                rest=self.flag(item.get("rest"), f"{where}[{position}].rest"),
            )
            for position, item in enumerate(self.mappings(value, where))
        )

    def record(self, value: object, where: str) -> FileRecord:
        payload = self.mapping(value, where)
        return FileRecord(
            imports=tuple(
                self.import_info(item, f"{where}.imports[{position}]")
                for position, item in enumerate(
                    self.mappings(payload.get("imports"), f"{where}.imports")
                )
            ),
            dependencies=self.strings(payload.get("dependencies"), f"{where}.dependencies"),
            functions=tuple(
                self.function(item, f"{where}.functions[{position}]")
                for position, item in enumerate(
                    self.mappings(payload.get("functions"), f"{where}.functions")
                )
            ),
            classes=tuple(
                self.class_info(item, f"{where}.classes[{position}]")
                for position, item in enumerate(
                    self.mappings(payload.get("classes"), f"{where}.classes")
                )
            ),
            constants=tuple(
                self.constant(item, f"{where}.constants[{position}]")
                for position, item in enumerate(
                    self.mappings(payload.get("constants"), f"{where}.constants")
                )
            ),
        )

    def import_info(self, item: Mapping[str, Any], where: str) -> ImportInfo:
        kind = item.get("kind")
        if kind not in _IMPORT_KINDS:
            raise self.fail(f"{where}.kind", "a known import kind")
        return ImportInfo(
            source=self.string(item.get("from"), f"{where}.from"),
            kind=kind,
            imported=self.strings(item.get("imported", []), f"{where}.imported"),
            is_default=self.flag(item.get("isDefault"), f"{where}.isDefault"),
            is_namespace=self.flag(item.get("isNamespace"), f"{where}.isNamespace"),
        )

    def function(self, item: Mapping[str, Any], where: str) -> FunctionSignature:
        return FunctionSignature(
            name=self.string(item.get("name"), f"{where}.name"),
            params=self.params(item.get("params", []), f"{where}.params"),
            return_type=self.optional_string(item.get("returnType"), f"{where}.returnType"),
            is_async=self.flag(item.get("isAsync"), f"{where}.isAsync"),
            is_exported=self.flag(item.get("isExported"), f"{where}.isExported"),
            is_generator=self.flag(item.get("isGenerator"), f"{where}.isGenerator"),
        )

    def method(self, item: Mapping[str, Any], where: str) -> MethodInfo:
        return MethodInfo(
            name=self.string(item.get("name"), f"{where}.name"),
            params=self.params(item.get("params", []), f"{where}.params"),
            return_type=self.optional_string(item.get("returnType"), f"{where}.returnType"),
            is_async=self.flag(item.get("isAsync"), f"{where}.isAsync"),
            is_static=self.flag(item.get("isStatic"), f"{where}.isStatic"),
            is_private=self.flag(item.get("isPrivate"), f"{where}.isPrivate"),
            is_protected=self.flag(item.get("isProtected"), f"{where}.isProtected"),
            is_abstract=self.flag(item.get("isAbstract"), f"{where}.isAbstract"),
        )

    def prop(self, item: Mapping[str, Any], where: str) -> PropertyInfo:
        return PropertyInfo(
            name=self.string(item.get("name"), f"{where}.name"),
            type=self.optional_string(item.get("type"), f"{where}.type"),
            is_static=self.flag(item.get("isStatic"), f"{where}.isStatic"),
            is_private=self.flag(item.get("isPrivate"), f"{where}.isPrivate"),
            is_protected=self.flag(item.get("isProtected"), f"{where}.isProtected"),
            is_readonly=self.flag(item.get("isReadonly"), f"{where}.isReadonly"),
        )

    def class_info(self, item: Mapping[str, Any], where: str) -> ClassInfo:
        return ClassInfo(
            name=self.string(item.get("name"), f"{where}.name"),
            is_exported=self.flag(item.get("isExported"), f"{where}.isExported"),
            is_abstract=self.flag(item.get("isAbstract"), f"{where}.isAbstract"),
            extends=self.optional_string(item.get("extends"), f"{where}.extends"),
            implements=self.strings(item.get("implements", []), f"{where}.implements"),
            methods=tuple(
                self.method(method, f"{where}.methods[{position}]")
                for position, method in enumerate(
                    self.mappings(item.get("methods", []), f"{where}.methods")
                )
            ),
            properties=tuple(
                self.prop(prop, f"{where}.properties[{position}]")
                for position, prop in enumerate(
                    self.mappings(item.get("properties", []), f"{where}.properties")
                )
            ),
        )

    def constant(self, item: Mapping[str, Any], where: str) -> ConstantInfo:
        init_kind = item.get("initKind", "unknown")
        if init_kind not in _INIT_KINDS:
            raise self.fail(f"{where}.initKind", "a known initializer kind")
        return ConstantInfo(
            name=self.string(item.get("name"), f"{where}.name"),
            type=self.optional_string(item.get("type"), f"{where}.type"),
            init_kind=init_kind,
            is_exported=self.flag(item.get("isExported"), f"{where}.isExported"),
        )
