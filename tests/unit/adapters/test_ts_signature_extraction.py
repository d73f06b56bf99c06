from __future__ import annotations

from pathlib import Path

from repo_index.adapters import TypeScriptJavaScriptExtractor
from repo_index.index.models import ImportInfo, Parameter

FIXTURES = Path(__file__).resolve().parents[2] / "fixtures" / "ts_js"


def _extract(name: str):
    extractor = TypeScriptJavaScriptExtractor()
    text = (FIXTURES / name).read_text(encoding="utf-8")
    return extractor.extract(f"src/{name}", text)


def test_typescript_imports_are_reported_in_source_order() -> None:
    result = _extract("service.ts")

    assert result.warnings == ()
    assert result.record.imports == (
        ImportInfo("fs", "import", is_default=True),
        ImportInfo("node:path", "import", is_namespace=True),
        ImportInfo("./config", "import", imported=("readConfig", "persist")),
        ImportInfo("../shared/helpers", "import", imported=("helper",), is_default=True),
        ImportInfo("./types", "import", imported=("Options",)),
        ImportInfo("./legacy", "require", imported=("legacy",)),
        ImportInfo("./format", "export", imported=("formatName",)),
        ImportInfo("./reexported", "export"),
        ImportInfo("./utils", "export", is_namespace=True),
        ImportInfo("./lazy", "dynamic-import"),
    )
    assert result.record.dependencies == ()


def test_typescript_function_signatures() -> None:
    functions = {item.name: item for item in _extract("service.ts").record.functions}

    start = functions["start"]
    assert start.is_async is True
    assert start.is_exported is True
    assert start.is_generator is False
    assert start.return_type == "Promise<boolean>"
    assert start.params == (
        Parameter("name", "string"),
        Parameter("retries", "number", optional=True),
        Parameter("rest", "string[]", rest=True),
    )

    ids = functions["ids"]
    assert ids.is_generator is True
    assert ids.is_exported is False
    assert ids.params == (Parameter("seed"),)
    assert ids.return_type is None


def test_typescript_classes_members_and_modifiers() -> None:
    classes = {item.name: item for item in _extract("service.ts").record.classes}

    base = classes["BaseService"]
    assert base.is_abstract is True
    assert base.is_exported is True
    assert [method.name for method in base.methods] == ["describe"]
    assert base.methods[0].is_abstract is True
    assert base.methods[0].is_protected is True

    service = classes["Service"]
    assert service.extends == "BaseService"
    assert service.implements == ("Runner", "Disposable")
    assert [method.name for method in service.methods] == [
        "run",
        "create",
        "format",
        "describe",
        "#hidden",
    ]
    methods = {method.name: method for method in service.methods}
    assert methods["run"].is_async is True
    assert methods["run"].return_type == "Promise<void>"
    assert methods["create"].is_static is True
    assert methods["format"].is_private is True
    assert methods["format"].params == (
        Parameter("value", "number"),
        Parameter("suffix", "string", optional=True),
    )
    assert methods["describe"].is_protected is True
    assert methods["#hidden"].is_private is True

    properties = {prop.name: prop for prop in service.properties}
    assert list(properties) == ["instances", "name", "cache", "#secret"]
    assert properties["instances"].is_static is True
    assert properties["instances"].type == "number"
    assert properties["name"].is_private is True
    assert properties["name"].is_readonly is True
    assert properties["cache"].is_protected is True
    assert properties["cache"].type == "Map<string, number>"
    assert properties["#secret"].is_private is True


def test_local_export_list_marks_declarations_exported() -> None:
    record = _extract("service.ts").record
    classes = {item.name: item for item in record.classes}
    constants = {item.name: item for item in record.constants}

    assert classes["Internal"].is_exported is True
    assert constants["RETRIES"].is_exported is True


def test_constants_capture_type_and_initializer_kind() -> None:
    constants = _extract("service.ts").record.constants
    by_name = {item.name: item for item in constants}

    assert [item.name for item in constants] == [
        "DEFAULT_NAME",
        "RETRIES",
        "handlers",
        "order",
        "build",
        "mutable",
    ]
    assert by_name["DEFAULT_NAME"].type == "string"
    assert by_name["DEFAULT_NAME"].init_kind == "literal"
    assert by_name["handlers"].init_kind == "object"
    assert by_name["order"].init_kind == "array"
    assert by_name["build"].init_kind == "function"
    assert by_name["mutable"].is_exported is True
    assert "counter" not in by_name


def test_extraction_is_a_pure_function_of_content() -> None:
    assert _extract("service.ts") == _extract("service.ts")


def test_declaration_file_records_ambient_and_bodiless_declarations() -> None:
    result = _extract("ambient.d.ts")
    record = result.record

    assert result.warnings == ()
    assert record.imports == (ImportInfo("./ast", "import", imported=("Node",)),)

    functions = {item.name: item for item in record.functions}
    assert list(functions) == ["parse", "helper", "internal"]
    assert functions["parse"].is_exported is True
    assert functions["parse"].params == (Parameter("input", "string"),)
    assert functions["parse"].return_type == "Node"
    assert functions["helper"].is_exported is True
    assert functions["helper"].return_type == "void"
    assert functions["internal"].is_exported is False
    assert functions["internal"].params == (Parameter("flag", "boolean", optional=True),)

    (parser,) = record.classes
    assert parser.name == "Parser"
    assert parser.is_exported is True
    assert [method.name for method in parser.methods] == ["parse", "create"]
    assert parser.methods[1].is_static is True
    assert parser.methods[1].return_type == "Parser"
    assert [prop.name for prop in parser.properties] == ["source"]
    assert parser.properties[0].is_readonly is True

    constants = {item.name: item for item in record.constants}
    assert list(constants) == ["VERSION", "BUILD"]
    assert constants["VERSION"].is_exported is True
    assert constants["VERSION"].type == "string"
    assert constants["VERSION"].init_kind == "unknown"
    assert constants["BUILD"].is_exported is False
