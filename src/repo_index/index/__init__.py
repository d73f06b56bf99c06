"""Project index building blocks."""

from .discovery import DiscoveryResult, discover_files
from .errors import (
    IndexFormatError,
    IndexNotFoundError,
    IndexSchemaUnsupportedError,
    PatternConflictError,
    RootNotFoundError,
    exit_code_for,
)
from .filtering import filter_project_index, filtering_stats
from .graph import find_cycles, project_stats
from .ignore import IgnoreRules, load_ignore_rules
from .matcher import PatternCache, PatternMatcher
from .models import INDEX_SCHEMA_VERSION, FileRecord, FilterOptions, IndexWarning, ProjectIndex
from .resolver import FileLookup, resolve_specifier
from .store import DEFAULT_INDEX_FILENAME, load_index, write_index
from .tree import build_tree

__all__ = [
    "DEFAULT_INDEX_FILENAME",
    "DiscoveryResult",
    "FileLookup",
    "FileRecord",
    "FilterOptions",
    "INDEX_SCHEMA_VERSION",
    "IgnoreRules",
    "IndexFormatError",
    "IndexNotFoundError",
    "IndexSchemaUnsupportedError",
    "IndexWarning",
    "PatternCache",
    "PatternConflictError",
    "PatternMatcher",
    "ProjectIndex",
    "RootNotFoundError",
    "build_tree",
    "discover_files",
    "exit_code_for",
    "filter_project_index",
    "filtering_stats",
    "find_cycles",
    "load_index",
    "load_ignore_rules",
    "project_stats",
    "resolve_specifier",
    "write_index",
]
