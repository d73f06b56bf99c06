"""Tree-sitter TypeScript/JavaScript extractor for top-level file structure."""

from __future__ import annotations

import threading
from dataclasses import replace
from pathlib import PurePosixPath

import tree_sitter_javascript as tsjavascript
import tree_sitter_typescript as tstypescript
from tree_sitter import Language, Node, Parser

from repo_index.adapters.base import (
    SYNTAX_ERROR,
    ExtractionResult,
    normalize_type_text,
    validate_record,
)
from repo_index.index.models import (
    ClassInfo,
    ConstantInfo,
    FileRecord,
    FunctionSignature,
    ImportInfo,
    InitKind,
    MethodInfo,
    Parameter,
    PropertyInfo,
)

_LANGUAGES = {
    "typescript": Language(tstypescript.language_typescript()),
    "tsx": Language(tstypescript.language_tsx()),
    "javascript": Language(tsjavascript.language()),
}

_GRAMMAR_BY_EXTENSION = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}

_INIT_KINDS: dict[str, InitKind] = {
    "string": "literal",
    "number": "literal",
    "true": "literal",
    "false": "literal",
    "null": "literal",
    "undefined": "literal",
    "function": "function",
    "function_expression": "function",
    "generator_function": "function",
    "arrow_function": "function",
    "class": "class",
    "object": "object",
    "array": "array",
}

_FUNCTION_NODES = {
    "function_declaration",
    "generator_function_declaration",
    "function_signature",
}
_CLASS_NODES = {"class_declaration", "abstract_class_declaration"}
_METHOD_NODES = {"method_definition", "method_signature", "abstract_method_signature"}
_VARIABLE_NODES = {"lexical_declaration", "variable_declaration"}
_MEMBER_NAME_NODES = {"property_identifier", "private_property_identifier"}
_PARAMETER_NAME_NODES = {"identifier", "this"}

_local = threading.local()


def grammar_for_path(path: str) -> str | None:
    """Return the grammar name used for a file path, or None when unsupported."""
    return _GRAMMAR_BY_EXTENSION.get(PurePosixPath(path).suffix.lower())


def _parser_for(grammar: str) -> Parser:
    parsers: dict[str, Parser] | None = getattr(_local, "parsers", None)
    if parsers is None:
        parsers = {}
        _local.parsers = parsers
    parser = parsers.get(grammar)
    if parser is None:
        parser = Parser(_LANGUAGES[grammar])
        parsers[grammar] = parser
    return parser


class TypeScriptJavaScriptExtractor:
    """Extract imports, functions, classes and constants from TS/JS sources."""

    name = "ts_js_tree_sitter"

    def supports_path(self, path: str) -> bool:
        return grammar_for_path(path) is not None

    def extract(self, path: str, text: str) -> ExtractionResult:
        """Parse content and return its record; syntax errors yield an empty record."""
        grammar = grammar_for_path(path)
        if grammar is None:
            return ExtractionResult()
        source = text.encode("utf-8")
        tree = _parser_for(grammar).parse(source)
        root = tree.root_node
        if root.has_error:
            line = first_error_line(root)
            return ExtractionResult.empty(
                SYNTAX_ERROR,
                path,
                f"Syntax error near line {line}; file indexed without signatures.",
            )
        builder = _RecordBuilder(source)
        builder.walk(root)
        record = builder.build()
        validate_record(record)
        return ExtractionResult(record=record)


def first_error_line(root: Node) -> int:
    """Return the 1-based line of the first ERROR or missing node in source order."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
        if node.has_error:
            stack.extend(reversed(node.children))
    return root.start_point[0] + 1


class _RecordBuilder:
    """Collect one file's structure from a parsed tree."""

    def __init__(self, source: bytes) -> None:
        self.source = source
        self.imports: list[tuple[int, ImportInfo]] = []
        self.functions: list[FunctionSignature] = []
        self.classes: list[ClassInfo] = []
        self.constants: list[ConstantInfo] = []
        self.local_exports: set[str] = set()

    def text(self, node: Node) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def walk(self, root: Node) -> None:
        for statement in root.named_children:
            self._statement(statement, exported=False)
        self._calls(root)

    def build(self) -> FileRecord:
        self.imports.sort(key=lambda item: item[0])
        exported = self.local_exports
        return FileRecord(
            imports=tuple(info for _, info in self.imports),
            functions=tuple(
                replace(item, is_exported=True) if item.name in exported else item
                for item in self.functions
            ),
            classes=tuple(
                replace(item, is_exported=True) if item.name in exported else item
                for item in self.classes
            ),
            constants=tuple(
                replace(item, is_exported=True) if item.name in exported else item
                for item in self.constants
            ),
        )

    def _statement(self, node: Node, exported: bool) -> None:
        kind = node.type
        if kind == "import_statement":
            self._import(node)
        elif kind == "export_statement":
            self._export(node)
        elif kind in _FUNCTION_NODES:
            self._function(node, exported)
        elif kind in _CLASS_NODES:
            self._class(node, exported)
        elif kind in _VARIABLE_NODES:
            self._variables(node, exported)
        elif kind == "ambient_declaration":
            for declaration in node.named_children:
                self._statement(declaration, exported)

    def _string_value(self, node: Node | None) -> str | None:
        if node is None or node.type != "string":
            return None
        raw = self.text(node)
        if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in "'\"":
            return raw[1:-1]
        return None

    def _import(self, node: Node) -> None:
        require_clause = _first_child_of_type(node, "import_require_clause")
        if require_clause is not None:
            source = self._string_value(require_clause.child_by_field_name("source"))
            binding = _first_child_of_type(require_clause, "identifier")
            if source:
                bindings = (self.text(binding),) if binding is not None else ()
                self._add_import(node, ImportInfo(source, "require", imported=bindings))
            return
        source = self._string_value(node.child_by_field_name("source"))
        if not source:
            return
        imported: list[str] = []
        is_default = False
        is_namespace = False
        clause = _first_child_of_type(node, "import_clause")
        if clause is not None:
            for child in clause.named_children:
                if child.type == "identifier":
                    is_default = True
                elif child.type == "namespace_import":
                    is_namespace = True
                elif child.type == "named_imports":
                    for specifier in child.named_children:
                        if specifier.type != "import_specifier":
                            continue
                        local = specifier.child_by_field_name(
                            "alias"
                        ) or specifier.child_by_field_name("name")
                        if local is not None:
                            imported.append(self.text(local))
        self._add_import(
            node,
            ImportInfo(
                source,
                "import",
                imported=tuple(imported),
                is_default=is_default,
                is_namespace=is_namespace,
            ),
        )

    def _export(self, node: Node) -> None:
        source = self._string_value(node.child_by_field_name("source"))
        clause = _first_child_of_type(node, "export_clause")
        if source:
            names: list[str] = []
            if clause is not None:
                for specifier in clause.named_children:
                    if specifier.type != "export_specifier":
                        continue
                    exported = specifier.child_by_field_name(
                        "alias"
                    ) or specifier.child_by_field_name("name")
                    if exported is not None:
                        names.append(self.text(exported))
            is_namespace = _first_child_of_type(node, "namespace_export") is not None
            self._add_import(
                node,
                ImportInfo(source, "export", imported=tuple(names), is_namespace=is_namespace),
            )
            return
        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            self._statement(declaration, exported=True)
            return
        if clause is not None:
            for specifier in clause.named_children:
                local = specifier.child_by_field_name("name")
                if specifier.type == "export_specifier" and local is not None:
                    self.local_exports.add(self.text(local))

    def _add_import(self, node: Node, info: ImportInfo) -> None:
        self.imports.append((node.start_byte, info))

    def _calls(self, root: Node) -> None:
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "call_expression":
                self._call(node)
            stack.extend(reversed(node.named_children))

    def _call(self, node: Node) -> None:
        function = node.child_by_field_name("function")
        arguments = node.child_by_field_name("arguments")
        if function is None or arguments is None or not arguments.named_children:
            return
        source = self._string_value(arguments.named_children[0])
        if not source:
            return
        if function.type == "import":
            self._add_import(node, ImportInfo(source, "dynamic-import"))
        elif function.type == "identifier" and self.text(function) == "require":
            self._add_import(node, ImportInfo(source, "require"))

    def _function(self, node: Node, exported: bool) -> None:
        name = node.child_by_field_name("name")
        if name is None:
            return
        self.functions.append(
            FunctionSignature(
                name=self.text(name),
                params=self._parameters(node.child_by_field_name("parameters")),
                return_type=self._type_of(node, "return_type"),
                is_async=any(child.type == "async" for child in node.children),
                is_exported=exported,
                is_generator=any(child.type == "*" for child in node.children),
            )
        )

    def _type_of(self, node: Node, field_name: str) -> str | None:
        annotation = node.child_by_field_name(field_name)
        if annotation is None:
            return None
        return normalize_type_text(self.text(annotation))

    def _parameters(self, node: Node | None) -> tuple[Parameter, ...]:
        if node is None:
            return ()
        output: list[Parameter] = []
        for param in node.named_children:
            kind = param.type
            if kind in {"required_parameter", "optional_parameter"}:
                pattern = param.child_by_field_name("pattern")
                output.append(
                    self._parameter(
                        pattern,
                        type_text=self._type_of(param, "type"),
                        optional=kind == "optional_parameter",
                    )
                )
            elif kind == "assignment_pattern":
                output.append(self._parameter(param.child_by_field_name("left")))
            elif kind in {"identifier", "rest_pattern", "object_pattern", "array_pattern"}:
                output.append(self._parameter(param))
        return tuple(output)

    def _parameter(
        self,
        pattern: Node | None,
        type_text: str | None = None,
        optional: bool = False,
    ) -> Parameter:
        rest = pattern is not None and pattern.type == "rest_pattern"
        if rest and pattern is not None and pattern.named_children:
            pattern = pattern.named_children[0]
        name = "unknown"
        if pattern is not None and pattern.type in _PARAMETER_NAME_NODES:
            name = self.text(pattern)
        return Parameter(name=name, type=type_text, optional=optional, rest=rest)

    def _class(self, node: Node, exported: bool) -> None:
        name = node.child_by_field_name("name")
        if name is None:
            return
        extends: str | None = None
        implements: list[str] = []
        heritage = _first_child_of_type(node, "class_heritage")
        if heritage is not None:
            for clause in heritage.named_children:
                if clause.type == "extends_clause":
                    value = clause.child_by_field_name("value")
                    if value is not None and extends is None:
                        extends = self.text(value)
                elif clause.type == "implements_clause":
                    implements.extend(self._type_name(item) for item in clause.named_children)
                elif extends is None:
                    extends = self.text(clause)
        methods: list[MethodInfo] = []
        properties: list[PropertyInfo] = []
        body = node.child_by_field_name("body")
        if body is not None:
            for member in body.named_children:
                if member.type in _METHOD_NODES:
                    method = self._method(member)
                    if method is not None:
                        methods.append(method)
                elif member.type in {"public_field_definition", "field_definition"}:
                    prop = self._property(member)
                    if prop is not None:
                        properties.append(prop)
        self.classes.append(
            ClassInfo(
                name=self.text(name),
                is_exported=exported,
                is_abstract=node.type == "abstract_class_declaration",
                extends=extends,
                implements=tuple(implements),
                methods=tuple(methods),
                properties=tuple(properties),
            )
        )

    def _type_name(self, node: Node) -> str:
        if node.type == "generic_type":
            name = node.child_by_field_name("name")
            if name is not None:
                return self.text(name)
        return self.text(node)

    def _modifiers(self, member: Node, name: Node) -> tuple[set[str], str | None]:
        tokens: set[str] = set()
        accessibility: str | None = None
        for child in member.children:
            if child.start_byte >= name.start_byte:
                break
            if child.type == "accessibility_modifier":
                accessibility = self.text(child)
            else:
                tokens.add(child.type)
        return tokens, accessibility

    def _method(self, member: Node) -> MethodInfo | None:
        name = member.child_by_field_name("name")
        if name is None or name.type not in _MEMBER_NAME_NODES:
            return None
        method_name = self.text(name)
        if method_name == "constructor":
            return None
        tokens, accessibility = self._modifiers(member, name)
        if "get" in tokens or "set" in tokens:
            return None
        return MethodInfo(
            name=method_name,
            params=self._parameters(member.child_by_field_name("parameters")),
            return_type=self._type_of(member, "return_type"),
            is_async="async" in tokens,
            is_static="static" in tokens,
            is_private=accessibility == "private" or name.type == "private_property_identifier",
            is_protected=accessibility == "protected",
            is_abstract="abstract" in tokens or member.type == "abstract_method_signature",
        )

    def _property(self, member: Node) -> PropertyInfo | None:
        name = member.child_by_field_name("name") or member.child_by_field_name("property")
        if name is None or name.type not in _MEMBER_NAME_NODES:
            return None
        tokens, accessibility = self._modifiers(member, name)
        return PropertyInfo(
            name=self.text(name),
            type=self._type_of(member, "type"),
            is_static="static" in tokens,
            is_private=accessibility == "private" or name.type == "private_property_identifier",
            is_protected=accessibility == "protected",
            is_readonly="readonly" in tokens,
        )

    def _variables(self, node: Node, exported: bool) -> None:
        kind_node = node.child_by_field_name("kind")
        if kind_node is None and node.children:
            kind_node = node.children[0]
        is_const = kind_node is not None and kind_node.type == "const"
        if not (is_const or exported):
            return
        for declarator in node.named_children:
            if declarator.type != "variable_declarator":
                continue
            name = declarator.child_by_field_name("name")
            if name is None or name.type != "identifier":
                continue
            value = declarator.child_by_field_name("value")
            init_kind: InitKind = "unknown"
            if value is not None:
                init_kind = _INIT_KINDS.get(value.type, "unknown")
            self.constants.append(
                ConstantInfo(
                    name=self.text(name),
                    type=self._type_of(declarator, "type"),
                    init_kind=init_kind,
                    is_exported=exported,
                )
            )


def _first_child_of_type(node: Node, kind: str) -> Node | None:
    for child in node.children:
        if child.type == kind:
            return child
    return None
