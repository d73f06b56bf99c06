"""Source extractor interfaces."""

from .base import (
    ALL_EXCLUDED,
    DEFAULT_MAX_FILE_BYTES,
    EXTRACTION_ERROR,
    FILE_TOO_LARGE,
    INCLUDE_NO_MATCHES,
    IO_ERROR,
    SYNTAX_ERROR,
    ExtractionResult,
    Extractor,
    ExtractorContractError,
    IndexWarning,
    extract_file,
    normalize_type_text,
    validate_record,
)
from .ts_js import TypeScriptJavaScriptExtractor, grammar_for_path

__all__ = [
    "ALL_EXCLUDED",
    "DEFAULT_MAX_FILE_BYTES",
    "EXTRACTION_ERROR",
    "ExtractionResult",
    "Extractor",
    "ExtractorContractError",
    "FILE_TOO_LARGE",
    "INCLUDE_NO_MATCHES",
    "IO_ERROR",
    "IndexWarning",
    "SYNTAX_ERROR",
    "TypeScriptJavaScriptExtractor",
    "extract_file",
    "grammar_for_path",
    "normalize_type_text",
    "validate_record",
]
