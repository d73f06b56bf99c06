"""Core extractor protocol and data types."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from repo_index.index.models import (
    ALL_EXCLUDED,
    DEFAULT_MAX_FILE_BYTES,
    EXTRACTION_ERROR,
    FILE_TOO_LARGE,
    INCLUDE_NO_MATCHES,
    IO_ERROR,
    SYNTAX_ERROR,
    FileRecord,
    IndexWarning,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ExtractionResult:
    """Record produced for one file plus any warnings raised while producing it."""

    record: FileRecord = field(default_factory=FileRecord)
    warnings: tuple[IndexWarning, ...] = ()

    @classmethod
    def empty(cls, code: str, path: str, message: str) -> ExtractionResult:
        return cls(record=FileRecord(), warnings=(IndexWarning(code, path, message),))


class ExtractorContractError(ValueError):
    """Raised when extractor output violates the shared record contract."""


def normalize_type_text(text: str | None) -> str | None:
    """Strip whitespace and a leading ':' from annotation text; empty becomes None."""
    if text is None:
        return None
    normalized = text.strip()
    if normalized.startswith(":"):
        normalized = normalized[1:].strip()
    return normalized or None


def validate_record(record: FileRecord) -> None:
    """Validate names and import sources of an extracted record."""
    for item in record.imports:
        if not item.source:
            raise ExtractorContractError("Import source must be non-empty.")
    for function in record.functions:
        if not function.name.strip():
            raise ExtractorContractError("Function name must be non-empty.")
    for cls in record.classes:
        if not cls.name.strip():
            raise ExtractorContractError("Class name must be non-empty.")
        for method in cls.methods:
            if not method.name.strip():
                raise ExtractorContractError(f"Method name in {cls.name} must be non-empty.")
    for constant in record.constants:
        if not constant.name.strip():
            raise ExtractorContractError("Constant name must be non-empty.")
    if record.dependencies:
        raise ExtractorContractError("Extractors must not resolve dependencies.")


class Extractor(Protocol):
    """Protocol implemented by source extractors."""

    name: str

    def supports_path(self, path: str) -> bool:
        """Return True when the extractor handles a file path."""

    def extract(self, path: str, text: str) -> ExtractionResult:
        """Return the structural record of one file's content."""


def extract_file(
    extractor: Extractor,
    full_path: Path,
    relative_path: str,
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
) -> ExtractionResult:
    """Read one file under the size guard and hand its text to an extractor."""
    try:
        size = full_path.stat().st_size
        if size > max_file_bytes:
            return _too_large(relative_path, size, max_file_bytes)
        data = full_path.read_bytes()
    except OSError as exc:
        return ExtractionResult.empty(
            IO_ERROR, relative_path, f"Could not read file: {exc.strerror or exc}"
        )
    if len(data) > max_file_bytes:
        return _too_large(relative_path, len(data), max_file_bytes)
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        return ExtractionResult.empty(
            IO_ERROR, relative_path, f"File is not valid UTF-8 (byte {exc.start})."
        )
    try:
        return extractor.extract(relative_path, text)
    except Exception as exc:
        logger.debug("Extractor %s failed on %s", extractor.name, relative_path, exc_info=True)
        return ExtractionResult.empty(
            EXTRACTION_ERROR,
            relative_path,
            f"Extractor {extractor.name} failed: {exc}; indexed without signatures.",
        )


def _too_large(relative_path: str, size: int, limit: int) -> ExtractionResult:
    return ExtractionResult.empty(
        FILE_TOO_LARGE,
        relative_path,
        f"File is {size} bytes, above the {limit} byte limit; indexed without signatures.",
    )
