"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from repo_index.index.models import DEFAULT_MAX_FILE_BYTES
from repo_index.index.store import DEFAULT_INDEX_FILENAME
from repo_index.security import PathBlockedError, PatternLimits, relative_repo_path
from repo_index.security.patterns import MAX_GLOBSTARS, MAX_PATTERN_LENGTH, MAX_PATTERNS

CONFIG_FILENAME = "repo_index.toml"

DEFAULT_OUTPUT = DEFAULT_INDEX_FILENAME
DEFAULT_CACHE_MAX_SIZE = 500
DEFAULT_CACHE_TTL_SECONDS = 600
DEFAULT_MAX_WORKERS = 4
DEFAULT_BATCH_SIZE = 50

MAX_FILE_BYTES_CAP = 8 * 1024 * 1024
CACHE_MAX_SIZE_CAP = 10_000
CACHE_TTL_SECONDS_CAP = 86_400
MAX_WORKERS_CAP = 64
BATCH_SIZE_CAP = 1_000


@dataclass(slots=True, frozen=True)
class IndexSettings:
    """Deterministic indexing settings."""

    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    respect_gitignore: bool = True
    strict_patterns: bool = False
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES
    output: str = DEFAULT_OUTPUT


@dataclass(slots=True, frozen=True)
class CacheConfig:
    """Pattern cache sizing."""

    max_size: int = DEFAULT_CACHE_MAX_SIZE
    ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS


@dataclass(slots=True, frozen=True)
class WorkersConfig:
    """Extraction worker pool sizing."""

    max_workers: int = DEFAULT_MAX_WORKERS
    batch_size: int = DEFAULT_BATCH_SIZE


@dataclass(slots=True, frozen=True)
class IndexerConfig:
    """Fully merged indexer configuration."""

    repo_root: Path
    index: IndexSettings
    patterns: PatternLimits
    cache: CacheConfig
    workers: WorkersConfig

    @property
    def output_path(self) -> Path:
        return self.repo_root / self.index.output

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot for logs and hosts."""
        return {
            "repo_root": str(self.repo_root),
            "index": {
                "include": list(self.index.include),
                "exclude": list(self.index.exclude),
                "respect_gitignore": self.index.respect_gitignore,
                "strict_patterns": self.index.strict_patterns,
                "max_file_bytes": self.index.max_file_bytes,
                "output": self.index.output,
            },
            "patterns": {
                "max_patterns": self.patterns.max_patterns,
                "max_pattern_length": self.patterns.max_pattern_length,
                "max_globstars": self.patterns.max_globstars,
            },
            "cache": {
                "max_size": self.cache.max_size,
                "ttl_seconds": self.cache.ttl_seconds,
            },
            "workers": {
                "max_workers": self.workers.max_workers,
                "batch_size": self.workers.batch_size,
            },
        }


@dataclass(slots=True, frozen=True)
class ConfigOverrides:
    """Optional host overrides applied at highest precedence."""

    include: tuple[str, ...] | None = None
    exclude: tuple[str, ...] | None = None
    respect_gitignore: bool | None = None
    strict_patterns: bool | None = None
    max_file_bytes: int | None = None
    output: str | None = None
    max_workers: int | None = None
    batch_size: int | None = None


def default_config(repo_root: Path) -> IndexerConfig:
    """Build default config for a given project root."""
    return IndexerConfig(
        repo_root=repo_root.resolve(),
        index=IndexSettings(),
        patterns=PatternLimits(),
        cache=CacheConfig(),
        workers=WorkersConfig(),
    )


def load_repo_config_file(repo_root: Path) -> dict[str, object]:
    """Load optional repo_index.toml from the project root."""
    config_path = repo_root / CONFIG_FILENAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{CONFIG_FILENAME} must contain a top-level table.")
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def _tuple_of_strings(value: object, name: str) -> tuple[str, ...]:
    if not isinstance(value, list | tuple):
        raise ValueError(f"Config field '{name}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"Config field '{name}' must contain only strings.")
        output.append(item)
    return tuple(output)


def _optional_bool(value: object, name: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValueError(f"Config field '{name}' must be a boolean.")
    return value


def _output_path(repo_root: Path, value: object, name: str, default: str) -> str:
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValueError(f"Config field '{name}' must be a string.")
    try:
        return relative_repo_path(repo_root, value)
    except PathBlockedError as exc:
        raise ValueError(
            f"Config field '{name}' must name a file inside the project root."
        ) from exc


def merge_config(
    base: IndexerConfig,
    repo_payload: dict[str, object],
    overrides: ConfigOverrides,
) -> IndexerConfig:
    """Merge defaults, repo config, then host overrides."""
    index_payload = _get_table(repo_payload, "index")
    patterns_payload = _get_table(repo_payload, "patterns")
    cache_payload = _get_table(repo_payload, "cache")
    workers_payload = _get_table(repo_payload, "workers")

    include = base.index.include
    if "include" in index_payload:
        include = _tuple_of_strings(index_payload["include"], "index.include")
    exclude = base.index.exclude
    if "exclude" in index_payload:
        exclude = _tuple_of_strings(index_payload["exclude"], "index.exclude")

    merged = IndexerConfig(
        repo_root=base.repo_root,
        index=IndexSettings(
            include=include,
            exclude=exclude,
            respect_gitignore=_optional_bool(
                index_payload.get("respect_gitignore"),
                "index.respect_gitignore",
                base.index.respect_gitignore,
            ),
            strict_patterns=_optional_bool(
                index_payload.get("strict_patterns"),
                "index.strict_patterns",
                base.index.strict_patterns,
            ),
            max_file_bytes=_optional_positive_int_with_cap(
                index_payload.get("max_file_bytes"),
                "index.max_file_bytes",
                base.index.max_file_bytes,
                MAX_FILE_BYTES_CAP,
            ),
            output=_output_path(
                base.repo_root, index_payload.get("output"), "index.output", base.index.output
            ),
        ),
        patterns=PatternLimits(
            max_patterns=_optional_positive_int_with_cap(
                patterns_payload.get("max_patterns"),
                "patterns.max_patterns",
                base.patterns.max_patterns,
                MAX_PATTERNS,
            ),
            max_pattern_length=_optional_positive_int_with_cap(
                patterns_payload.get("max_pattern_length"),
                "patterns.max_pattern_length",
                base.patterns.max_pattern_length,
                MAX_PATTERN_LENGTH,
            ),
            max_globstars=_optional_positive_int_with_cap(
                patterns_payload.get("max_globstars"),
                "patterns.max_globstars",
                base.patterns.max_globstars,
                MAX_GLOBSTARS,
            ),
        ),
        cache=CacheConfig(
            max_size=_optional_positive_int_with_cap(
                cache_payload.get("max_size"),
                "cache.max_size",
                base.cache.max_size,
                CACHE_MAX_SIZE_CAP,
            ),
            ttl_seconds=_optional_positive_int_with_cap(
                cache_payload.get("ttl_seconds"),
                "cache.ttl_seconds",
                base.cache.ttl_seconds,
                CACHE_TTL_SECONDS_CAP,
            ),
        ),
        workers=WorkersConfig(
            max_workers=_optional_positive_int_with_cap(
                workers_payload.get("max_workers"),
                "workers.max_workers",
                base.workers.max_workers,
                MAX_WORKERS_CAP,
            ),
            batch_size=_optional_positive_int_with_cap(
                workers_payload.get("batch_size"),
                "workers.batch_size",
                base.workers.batch_size,
                BATCH_SIZE_CAP,
            ),
        ),
    )
    return apply_overrides(merged, overrides)


def apply_overrides(config: IndexerConfig, overrides: ConfigOverrides) -> IndexerConfig:
    """Apply host overrides at highest precedence."""
    index = IndexSettings(
        include=(
            _tuple_of_strings(overrides.include, "overrides.include")
            if overrides.include is not None
            else config.index.include
        ),
        exclude=(
            _tuple_of_strings(overrides.exclude, "overrides.exclude")
            if overrides.exclude is not None
            else config.index.exclude
        ),
        respect_gitignore=_optional_bool(
            overrides.respect_gitignore,
            "overrides.respect_gitignore",
            config.index.respect_gitignore,
        ),
        strict_patterns=_optional_bool(
            overrides.strict_patterns,
            "overrides.strict_patterns",
            config.index.strict_patterns,
        ),
        max_file_bytes=_optional_positive_int_with_cap(
            overrides.max_file_bytes,
            "overrides.max_file_bytes",
            config.index.max_file_bytes,
            MAX_FILE_BYTES_CAP,
        ),
        output=_output_path(
            config.repo_root, overrides.output, "overrides.output", config.index.output
        ),
    )
    workers = WorkersConfig(
        max_workers=_optional_positive_int_with_cap(
            overrides.max_workers,
            "overrides.max_workers",
            config.workers.max_workers,
            MAX_WORKERS_CAP,
        ),
        batch_size=_optional_positive_int_with_cap(
            overrides.batch_size,
            "overrides.batch_size",
            config.workers.batch_size,
            BATCH_SIZE_CAP,
        ),
    )
    return IndexerConfig(
        repo_root=config.repo_root,
        index=index,
        patterns=config.patterns,
        cache=config.cache,
        workers=workers,
    )


def load_effective_config(
    repo_root: Path, overrides: ConfigOverrides | None = None
) -> IndexerConfig:
    """Load effective config using merge order defaults -> repo config -> overrides."""
    resolved_root = repo_root.resolve()
    base = default_config(resolved_root)
    payload = load_repo_config_file(resolved_root)
    return merge_config(base, payload, overrides or ConfigOverrides())


def _optional_positive_int_with_cap(
    value: object,
    name: str,
    default: int,
    cap: int | None,
) -> int:
    if value is None:
        return default
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        raise ValueError(f"Config field '{name}' must be a positive integer.")
    if cap is not None and value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value
