"""Full scans, incremental updates and persistence of the project index."""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path

from repo_index.adapters import (
    ExtractionResult,
    Extractor,
    TypeScriptJavaScriptExtractor,
    extract_file,
)
from repo_index.config import IndexerConfig, default_config
from repo_index.index.discovery import build_matcher, discover_files, ensure_root
from repo_index.index.matcher import PatternCache
from repo_index.index.models import (
    INDEX_SCHEMA_VERSION,
    Edge,
    FileRecord,
    FilterOptions,
    IndexMetadata,
    IndexWarning,
    ProjectIndex,
)
from repo_index.index.resolver import FileLookup, build_edges, resolve_all, resolve_imports
from repo_index.index.store import load_index, write_index
from repo_index.index.tree import build_tree
from repo_index.logging.events import emit_run_event, new_run_id, run_event, utc_timestamp
from repo_index.security import relative_repo_path

logger = logging.getLogger(__name__)

DISCOVERY = "discovery"
EXTRACTION = "extraction"
RESOLUTION = "resolution"
TREE = "tree"
COMPLETE = "complete"


@dataclass(slots=True, frozen=True)
class ProgressEvent:
    """Progress notification for one pipeline stage."""

    stage: str
    current: int
    total: int


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass(slots=True, frozen=True)
class ScanResult:
    """Index produced by a scan or update, with the warnings collected on the way."""

    index: ProjectIndex
    warnings: tuple[IndexWarning, ...] = ()
    removed: bool = False


class IndexManager:
    """Build, update, load and write the project index for one root."""

    def __init__(
        self,
        repo_root: Path,
        config: IndexerConfig | None = None,
        cache: PatternCache | None = None,
        progress: ProgressCallback | None = None,
        extractor: Extractor | None = None,
    ) -> None:
        self._repo_root = repo_root.resolve()
        self._config = config or default_config(self._repo_root)
        self._cache = cache or PatternCache(
            max_size=self._config.cache.max_size,
            ttl_seconds=self._config.cache.ttl_seconds,
        )
        self._progress = progress
        self._extractor = extractor or TypeScriptJavaScriptExtractor()

    @property
    def repo_root(self) -> Path:
        return self._repo_root

    @property
    def config(self) -> IndexerConfig:
        return self._config

    @property
    def cache(self) -> PatternCache:
        return self._cache

    @property
    def index_path(self) -> Path:
        return self._config.output_path

    def default_filters(self) -> FilterOptions:
        return FilterOptions(include=self._config.index.include, exclude=self._config.index.exclude)

    def scan(self, filters: FilterOptions | None = None) -> ScanResult:
        """Rebuild the whole index from the filesystem."""
        active = filters or self.default_filters()
        run_id = new_run_id()
        started = time.perf_counter()
        try:
            result = self._scan(active)
        except Exception as exc:
            self._emit(run_id, "scan", started, error=exc)
            raise
        self._emit(
            run_id,
            "scan",
            started,
            files=len(result.index.nodes),
            edges=len(result.index.edges),
            warnings=len(result.warnings),
            include=list(active.include),
            exclude=list(active.exclude),
            strict_patterns=self._config.index.strict_patterns,
        )
        return result

    def update(
        self,
        path: str | os.PathLike[str],
        index: ProjectIndex,
        filters: FilterOptions | None = None,
    ) -> ScanResult:
        """Re-index one file into an existing index, or remove it when it no longer qualifies.

        Filters default to the ones recorded when the index was built.
        """
        active = filters or index.metadata.filters
        run_id = new_run_id()
        started = time.perf_counter()
        try:
            result = self._update(path, index, active)
        except Exception as exc:
            self._emit(run_id, "update", started, error=exc)
            raise
        self._emit(
            run_id,
            "update",
            started,
            path=os.fspath(path),
            files=len(result.index.nodes),
            edges=len(result.index.edges),
            warnings=len(result.warnings),
            removed_file=result.removed,
        )
        return result

    def load(self, path: Path | None = None) -> ProjectIndex:
        target = path or self.index_path
        run_id = new_run_id()
        started = time.perf_counter()
        try:
            index = load_index(target)
        except Exception as exc:
            self._emit(run_id, "load", started, error=exc, output=str(target))
            raise
        self._emit(run_id, "load", started, output=str(target), files=len(index.nodes))
        return index

    def write(self, index: ProjectIndex, path: Path | None = None) -> Path:
        target = path or self.index_path
        run_id = new_run_id()
        started = time.perf_counter()
        try:
            written = write_index(index, target)
        except Exception as exc:
            self._emit(run_id, "write", started, error=exc, output=str(target))
            raise
        self._emit(run_id, "write", started, output=str(written), files=len(index.nodes))
        return written

    def scan_and_write(self, filters: FilterOptions | None = None) -> ScanResult:
        result = self.scan(filters)
        self.write(result.index)
        return result

    def update_and_write(
        self,
        path: str | os.PathLike[str],
        filters: FilterOptions | None = None,
    ) -> ScanResult:
        """Load the persisted index, update one file, and write it back."""
        result = self.update(path, self.load(), filters)
        self.write(result.index)
        return result

    def _scan(self, filters: FilterOptions) -> ScanResult:
        root = ensure_root(self._repo_root)
        settings = self._config.index
        discovery = discover_files(
            root,
            filters,
            cache=self._cache,
            limits=self._config.patterns,
            respect_gitignore=settings.respect_gitignore,
            strict_patterns=settings.strict_patterns,
        )
        paths = discovery.paths
        self._notify(DISCOVERY, len(paths), len(paths))

        extracted = self._extract_all(root, paths)
        warnings = list(discovery.warnings)
        for path in paths:
            warnings.extend(extracted[path].warnings)

        self._notify(RESOLUTION, 0, len(paths))
        lookup = FileLookup.from_paths(paths)
        dependencies = resolve_all(
            {path: extracted[path].record.imports for path in paths},
            lookup,
        )
        files: dict[str, FileRecord] = {}
        edges: list[Edge] = []
        for path in paths:
            files[path] = replace(extracted[path].record, dependencies=dependencies[path])
            edges.extend(build_edges(path, dependencies[path]))
        self._notify(RESOLUTION, len(paths), len(paths))

        self._notify(TREE, 0, 1)
        tree = build_tree(paths, root.name)
        self._notify(TREE, 1, 1)

        now = utc_timestamp()
        index = ProjectIndex(
            metadata=IndexMetadata(
                version=INDEX_SCHEMA_VERSION,
                root=str(root),
                created_at=now,
                updated_at=now,
                total_files=len(paths),
                filters=filters,
            ),
            tree=tree,
            nodes=list(paths),
            edges=edges,
            files=files,
        )
        self._log_warnings(warnings)
        self._notify(COMPLETE, len(paths), len(paths))
        return ScanResult(index=index, warnings=tuple(warnings))

    def _update(
        self,
        path: str | os.PathLike[str],
        index: ProjectIndex,
        filters: FilterOptions,
    ) -> ScanResult:
        root = ensure_root(self._repo_root)
        relative = relative_repo_path(root, path)
        matcher = build_matcher(
            root,
            filters,
            cache=self._cache,
            limits=self._config.patterns,
            respect_gitignore=self._config.index.respect_gitignore,
        )
        self._notify(DISCOVERY, 1, 1)

        warnings: list[IndexWarning] = []
        files = {key: value for key, value in index.files.items() if key != relative}
        edges = [edge for edge in index.edges if edge.source != relative]
        removed = not (_is_regular_file(root, relative) and matcher.matches(relative))
        if removed:
            self._notify(EXTRACTION, 1, 1)
            self._notify(RESOLUTION, 1, 1)
        else:
            extracted = self._extract_one(root, relative)
            warnings.extend(extracted.warnings)
            self._notify(EXTRACTION, 1, 1)
            lookup = FileLookup.from_paths([*files, relative])
            dependencies = resolve_imports(extracted.record.imports, relative, lookup)
            files[relative] = replace(extracted.record, dependencies=dependencies)
            edges.extend(build_edges(relative, dependencies))
            edges.sort()
            self._notify(RESOLUTION, 1, 1)

        nodes = sorted(files)
        self._notify(TREE, 0, 1)
        tree = build_tree(nodes, root.name)
        self._notify(TREE, 1, 1)
        updated = ProjectIndex(
            metadata=replace(
                index.metadata,
                root=str(root),
                updated_at=utc_timestamp(),
                total_files=len(nodes),
                filters=filters,
            ),
            tree=tree,
            nodes=nodes,
            edges=edges,
            files={key: files[key] for key in nodes},
        )
        if removed:
            logger.info("Removed %s from the index", relative)
        self._log_warnings(warnings)
        self._notify(COMPLETE, len(nodes), len(nodes))
        return ScanResult(index=updated, warnings=tuple(warnings), removed=removed)

    def _extract_one(self, root: Path, relative: str) -> ExtractionResult:
        return extract_file(
            self._extractor,
            root / relative,
            relative,
            max_file_bytes=self._config.index.max_file_bytes,
        )

    def _extract_all(self, root: Path, paths: tuple[str, ...]) -> dict[str, ExtractionResult]:
        """Extract files in bounded batches; results are merged on the calling thread."""
        total = len(paths)
        results: dict[str, ExtractionResult] = {}
        if total == 0:
            self._notify(EXTRACTION, 0, 0)
            return results
        batch_size = self._config.workers.batch_size
        workers = min(self._config.workers.max_workers, total)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="repo-index") as pool:
            for start in range(0, total, batch_size):
                batch = paths[start : start + batch_size]
                for path, result in zip(
                    batch,
                    pool.map(lambda item: self._extract_one(root, item), batch),
                    strict=True,
                ):
                    results[path] = result
                self._notify(EXTRACTION, start + len(batch), total)
        return results

    def _notify(self, stage: str, current: int, total: int) -> None:
        if self._progress is None:
            return
        try:
            self._progress(ProgressEvent(stage=stage, current=current, total=total))
        except Exception:
            logger.warning("Progress callback failed at stage %s", stage, exc_info=True)

    def _log_warnings(self, warnings: list[IndexWarning]) -> None:
        for warning in warnings:
            logger.warning("%s [%s]: %s", warning.path, warning.code, warning.message)

    def _emit(
        self,
        run_id: str,
        operation: str,
        started: float,
        error: BaseException | None = None,
        **metadata: object,
    ) -> None:
        error_code = None
        if error is not None:
            code = getattr(error, "code", None)
            error_code = code if isinstance(code, str) else type(error).__name__
        emit_run_event(
            run_event(
                run_id,
                operation,
                ok=error is None,
                error_code=error_code,
                root=str(self._repo_root),
                duration_ms=int((time.perf_counter() - started) * 1000),
                **metadata,
            )
        )


def _is_regular_file(root: Path, relative: str) -> bool:
    """Return True for a non-symlinked regular file reached without symlinked directories."""
    current = root
    for part in relative.split("/"):
        current = current / part
        if current.is_symlink():
            return False
    return current.is_file()
