"""Typed models for the project index."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

INDEX_SCHEMA_VERSION = 1

SUPPORTED_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mts", ".cts", ".mjs", ".cjs")
DEFAULT_MAX_FILE_BYTES = 1024 * 1024

ImportKind = Literal["import", "export", "require", "dynamic-import"]
InitKind = Literal["literal", "function", "class", "object", "array", "unknown"]
TreeNodeKind = Literal["directory", "file"]

SYNTAX_ERROR = "syntax_error"
FILE_TOO_LARGE = "file_too_large"
IO_ERROR = "io_error"
EXTRACTION_ERROR = "extraction_error"
INCLUDE_NO_MATCHES = "include_no_matches"
ALL_EXCLUDED = "all_excluded"


@dataclass(slots=True, frozen=True)
class FilterOptions:
    """Include/exclude glob configuration for one scan or update."""

    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True, order=True)
class IndexWarning:
    """Non-fatal problem collected during a scan or update."""

    code: str
    path: str
    message: str


@dataclass(slots=True, frozen=True)
class ImportInfo:
    """Raw import, re-export, require, or dynamic import statement."""

    source: str
    kind: ImportKind
    imported: tuple[str, ...] = ()
    is_default: bool = False
    is_namespace: bool = False


@dataclass(slots=True, frozen=True)
class Parameter:
    """One declared parameter of a function or method."""

    name: str
    type: str | None = None
    optional: bool = False
    rest: bool = False


@dataclass(slots=True, frozen=True)
class FunctionSignature:
    """Top-level function declaration."""

    name: str
    params: tuple[Parameter, ...]
    return_type: str | None
    is_async: bool
    is_exported: bool
    is_generator: bool = False


@dataclass(slots=True, frozen=True)
class MethodInfo:
    """Class method declaration."""

    name: str
    params: tuple[Parameter, ...]
    return_type: str | None
    is_async: bool
    is_static: bool = False
    is_private: bool = False
    is_protected: bool = False
    is_abstract: bool = False


@dataclass(slots=True, frozen=True)
class PropertyInfo:
    """Class property (field) declaration."""

    name: str
    type: str | None = None
    is_static: bool = False
    is_private: bool = False
    is_protected: bool = False
    is_readonly: bool = False


@dataclass(slots=True, frozen=True)
class ClassInfo:
    """Top-level class declaration."""

    name: str
    is_exported: bool
    is_abstract: bool = False
    extends: str | None = None
    implements: tuple[str, ...] = ()
    methods: tuple[MethodInfo, ...] = ()
    properties: tuple[PropertyInfo, ...] = ()


@dataclass(slots=True, frozen=True)
class ConstantInfo:
    """Top-level constant (or exported variable) declaration."""

    name: str
    type: str | None
    init_kind: InitKind
    is_exported: bool


@dataclass(slots=True, frozen=True)
class FileRecord:
    """Structural summary of one indexed file."""

    imports: tuple[ImportInfo, ...] = ()
    dependencies: tuple[str, ...] = ()
    functions: tuple[FunctionSignature, ...] = ()
    classes: tuple[ClassInfo, ...] = ()
    constants: tuple[ConstantInfo, ...] = ()


@dataclass(slots=True, frozen=True, order=True)
class Edge:
    """Directed dependency from one indexed file to another."""

    source: str
    target: str


@dataclass(slots=True)
class TreeNode:
    """Directory or file node of the navigation tree."""

    name: str
    kind: TreeNodeKind
    children: list[TreeNode] | None = None


@dataclass(slots=True, frozen=True)
class IndexMetadata:
    """Provenance and bookkeeping for a project index."""

    version: int
    root: str
    created_at: str
    updated_at: str
    total_files: int
    filters: FilterOptions = field(default_factory=FilterOptions)


@dataclass(slots=True)
class ProjectIndex:
    """Complete index of a project: tree, nodes, edges and per-file records."""

    metadata: IndexMetadata
    tree: TreeNode
    nodes: list[str]
    edges: list[Edge]
    files: dict[str, FileRecord]

    def outgoing(self, path: str) -> list[Edge]:
        """Return edges whose source is the given path, in stored order."""
        return [edge for edge in self.edges if edge.source == path]

    def invariant_violations(self, allow_dangling_targets: bool = False) -> list[str]:
        """Return human-readable descriptions of broken index invariants."""
        problems: list[str] = []
        if self.nodes != sorted(self.files):
            problems.append("nodes does not equal sorted(files)")
        if len(set(self.nodes)) != len(self.nodes):
            problems.append("nodes contains duplicates")
        if self.metadata.total_files != len(self.nodes):
            problems.append("metadata.total_files does not match nodes")
        node_set = set(self.nodes)
        by_source: dict[str, list[str]] = {}
        for edge in self.edges:
            if edge.source not in node_set:
                problems.append(f"edge source {edge.source} is not a node")
            if edge.target not in node_set and not allow_dangling_targets:
                problems.append(f"edge target {edge.target} is not a node")
            by_source.setdefault(edge.source, []).append(edge.target)
        for path, record in self.files.items():
            targets = by_source.get(path, [])
            if len(set(targets)) != len(targets):
                problems.append(f"duplicate outgoing edges for {path}")
            if list(record.dependencies) != sorted(set(targets)):
                problems.append(f"dependencies of {path} do not match its edges")
        return problems
