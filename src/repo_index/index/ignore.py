"""Built-in exclusions and root .gitignore rules."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import pathspec

from repo_index.index.matcher import PatternCache

logger = logging.getLogger(__name__)

BUILTIN_EXCLUDED_DIRS = frozenset(
    {
        "node_modules",
        "dist",
        "build",
        ".next",
        ".turbo",
        ".git",
        "coverage",
        ".nyc_output",
    }
)

DEFAULT_IGNORE_PATTERNS = (
    ".vscode/",
    ".idea/",
    "*.swp",
    "*.swo",
    "*~",
    ".DS_Store",
    "Thumbs.db",
    "*.log",
    "logs/",
    ".env",
    ".env.local",
    ".env.*.local",
    "temp/",
    "tmp/",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
)


@dataclass(slots=True, frozen=True)
class IgnoreRules:
    """Ignore decisions for project-relative POSIX paths.

    Hidden entries (leading '.') and built-in build/vendor directories are
    skipped at any depth; everything else goes through gitignore matching.
    """

    lines: tuple[str, ...]
    spec: pathspec.PathSpec

    def is_ignored(self, relative_path: str) -> bool:
        parts = relative_path.split("/")
        if any(part in BUILTIN_EXCLUDED_DIRS for part in parts[:-1]):
            return True
        if any(part.startswith(".") for part in parts):
            return True
        return self.spec.match_file(relative_path)

    def prunes_directory(self, relative_dir: str) -> bool:
        """Return True when nothing below the directory can be indexed."""
        name = relative_dir.rsplit("/", 1)[-1]
        if name in BUILTIN_EXCLUDED_DIRS or name.startswith("."):
            return True
        return self.spec.match_file(f"{relative_dir}/")


def read_gitignore(root: Path) -> tuple[str, ...]:
    path = root / ".gitignore"
    if not path.is_file():
        return ()
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return ()
    return tuple(text.splitlines())


def load_ignore_rules(
    root: Path,
    respect_gitignore: bool = True,
    cache: PatternCache | None = None,
) -> IgnoreRules:
    """Combine default ignore patterns with the root .gitignore, in that order."""
    lines = DEFAULT_IGNORE_PATTERNS
    if respect_gitignore:
        lines = lines + read_gitignore(root)

    def factory() -> IgnoreRules:
        try:
            spec = pathspec.GitIgnoreSpec.from_lines(lines)
        except ValueError as exc:
            logger.warning("Ignoring unparsable .gitignore under %s: %s", root, exc)
            spec = pathspec.GitIgnoreSpec.from_lines(DEFAULT_IGNORE_PATTERNS)
        return IgnoreRules(lines=lines, spec=spec)

    if cache is None:
        return factory()
    return cache.get_or_compile(("ignore", lines), factory)
