from __future__ import annotations

from pathlib import Path

from repo_index.adapters import (
    EXTRACTION_ERROR,
    FILE_TOO_LARGE,
    IO_ERROR,
    SYNTAX_ERROR,
    ExtractionResult,
    ExtractorContractError,
    TypeScriptJavaScriptExtractor,
    extract_file,
)
from repo_index.index.models import FileRecord

FIXTURES = Path(__file__).resolve().parents[2] / "fixtures" / "ts_js"


def test_syntax_error_yields_empty_record_and_warning() -> None:
    extractor = TypeScriptJavaScriptExtractor()
    text = (FIXTURES / "broken.ts").read_text(encoding="utf-8")

    result = extractor.extract("src/broken.ts", text)

    assert result.record == FileRecord()
    (warning,) = result.warnings
    assert warning.code == SYNTAX_ERROR
    assert warning.path == "src/broken.ts"
    assert "Syntax error near line" in warning.message


def test_oversized_file_is_not_parsed(tmp_path: Path) -> None:
    target = tmp_path / "big.ts"
    target.write_text("export const a = 1;\n" * 10, encoding="utf-8")

    result = extract_file(TypeScriptJavaScriptExtractor(), target, "big.ts", max_file_bytes=16)

    assert result.record == FileRecord()
    assert [warning.code for warning in result.warnings] == [FILE_TOO_LARGE]


def test_undecodable_file_reports_io_error(tmp_path: Path) -> None:
    target = tmp_path / "bad.js"
    target.write_bytes(b"const a = '\xff\xfe';\n")

    result = extract_file(TypeScriptJavaScriptExtractor(), target, "bad.js")

    assert result.record == FileRecord()
    assert [warning.code for warning in result.warnings] == [IO_ERROR]


def test_missing_file_reports_io_error(tmp_path: Path) -> None:
    result = extract_file(TypeScriptJavaScriptExtractor(), tmp_path / "gone.ts", "gone.ts")

    assert [warning.code for warning in result.warnings] == [IO_ERROR]


def test_byte_order_mark_is_ignored(tmp_path: Path) -> None:
    target = tmp_path / "bom.ts"
    target.write_bytes(b"\xef\xbb\xbfexport const a = 1;\n")

    result = extract_file(TypeScriptJavaScriptExtractor(), target, "bom.ts")

    assert result.warnings == ()
    assert [constant.name for constant in result.record.constants] == ["a"]


class _FailingExtractor:
    name = "failing"

    def supports_path(self, path: str) -> bool:
        return True

    def extract(self, path: str, text: str) -> ExtractionResult:
        raise ExtractorContractError("Function name must be non-empty.")


def test_extractor_failure_degrades_to_warning(tmp_path: Path) -> None:
    target = tmp_path / "a.ts"
    target.write_text("export const a = 1;\n", encoding="utf-8")

    result = extract_file(_FailingExtractor(), target, "a.ts")

    assert result.record == FileRecord()
    (warning,) = result.warnings
    assert warning.code == EXTRACTION_ERROR
    assert warning.path == "a.ts"
    assert "Function name must be non-empty." in warning.message
