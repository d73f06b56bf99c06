"""Relative import resolution against the known project file set."""

from __future__ import annotations

import posixpath
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import PurePosixPath

from repo_index.index.models import SUPPORTED_EXTENSIONS, Edge, ImportInfo

RELATIVE_PREFIXES = ("./", "../")
INDEX_BASENAME = "index"

_TYPESCRIPT_SIBLINGS = {".js": ".ts", ".jsx": ".tsx", ".mjs": ".mts", ".cjs": ".cts"}


@dataclass(slots=True, frozen=True)
class FileLookup:
    """Read-only set of project-relative paths used for resolution."""

    paths: frozenset[str]

    @classmethod
    def from_paths(cls, paths: Iterable[str]) -> FileLookup:
        return cls(paths=frozenset(paths))

    def __contains__(self, path: object) -> bool:
        return path in self.paths

    def __len__(self) -> int:
        return len(self.paths)


def is_relative_specifier(specifier: str) -> bool:
    return specifier in {".", ".."} or specifier.startswith(RELATIVE_PREFIXES)


def normalize_specifier(specifier: str, importer: str) -> str | None:
    """Join a relative specifier onto the importer's directory.

    Returns "" for the project root directory and None when the result
    would leave the root.
    """
    joined = posixpath.normpath(posixpath.join(posixpath.dirname(importer), specifier))
    if joined == ".":
        return ""
    if joined == ".." or joined.startswith("../") or joined.startswith("/"):
        return None
    return joined


def candidate_paths(normalized: str) -> list[str]:
    """Return resolution candidates for a normalized path in priority order."""
    candidates: list[str] = []
    if normalized:
        candidates.append(normalized)
        suffix = PurePosixPath(normalized).suffix
        sibling = _TYPESCRIPT_SIBLINGS.get(suffix)
        if sibling is not None:
            candidates.append(normalized[: -len(suffix)] + sibling)
        candidates.extend(normalized + extension for extension in SUPPORTED_EXTENSIONS)
    directory = f"{normalized}/" if normalized else ""
    candidates.extend(
        f"{directory}{INDEX_BASENAME}{extension}" for extension in SUPPORTED_EXTENSIONS
    )
    return candidates


def resolve_specifier(specifier: str, importer: str, lookup: FileLookup) -> str | None:
    """Resolve one specifier to a known file, or None when it is external or unknown."""
    if not is_relative_specifier(specifier):
        return None
    normalized = normalize_specifier(specifier, importer)
    if normalized is None:
        return None
    for candidate in candidate_paths(normalized):
        if candidate in lookup:
            return candidate
    return None


def resolve_imports(
    imports: Iterable[ImportInfo],
    importer: str,
    lookup: FileLookup,
) -> tuple[str, ...]:
    """Return sorted, unique dependency paths for one file's imports."""
    resolved = {
        target
        for item in imports
        if (target := resolve_specifier(item.source, importer, lookup)) is not None
    }
    return tuple(sorted(resolved))


def build_edges(importer: str, dependencies: Iterable[str]) -> list[Edge]:
    return [Edge(source=importer, target=target) for target in dependencies]


def resolve_all(
    imports_by_file: Mapping[str, Iterable[ImportInfo]],
    lookup: FileLookup,
) -> dict[str, tuple[str, ...]]:
    """Resolve every file's imports against one shared lookup."""
    return {
        path: resolve_imports(imports, path, lookup)
        for path, imports in imports_by_file.items()
    }
