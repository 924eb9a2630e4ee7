"""Go front-end built on tree-sitter.

Parses Go source with the ``tree-sitter-go`` grammar and lowers the
concrete syntax tree into the dataclasses of :mod:`beeswag.syntax.nodes`.
tree-sitter is error tolerant: a file with syntax errors still yields a
:class:`~beeswag.syntax.nodes.SourceFile`, flagged with ``has_error`` so
callers can warn about possibly incomplete results.

Doc comments follow the Go convention: the run of comments ending on the
line directly above a declaration, with no blank line in between.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

import tree_sitter_go
from tree_sitter import Language, Node, Parser

from beeswag.exceptions import SourceParseError
from beeswag.syntax.nodes import (
    ArrayType,
    Assign,
    BasicLit,
    Call,
    Comment,
    CompositeLit,
    ConstSpec,
    Expr,
    ExprStmt,
    Field,
    FuncDecl,
    Ident,
    ImportSpec,
    InterfaceType,
    MapType,
    Package,
    Param,
    Pointer,
    Selector,
    SourceFile,
    Stmt,
    StructType,
    TypeSpec,
    Unary,
    Unknown,
    comment_lines,
    unquote,
)

GO_LANGUAGE = Language(tree_sitter_go.language())

_IDENTIFIERS = frozenset(
    {"identifier", "type_identifier", "field_identifier", "package_identifier"}
)
_KEYWORD_VALUES = frozenset({"true", "false", "nil", "iota"})
_LITERAL_KINDS = {
    "int_literal": "INT",
    "float_literal": "FLOAT",
    "imaginary_literal": "IMAG",
    "rune_literal": "CHAR",
    "interpreted_string_literal": "STRING",
    "raw_string_literal": "STRING",
}


class GoParser:
    """Parses Go files and package directories into syntax variants.

    One parser instance is reused for a whole run; it holds no state
    between calls other than the tree-sitter parser itself.

    Example::

        parser = GoParser()
        source = parser.parse_file(Path("routers/router.go"))
        for spec in source.imports:
            print(spec.name, spec.path)
    """

    def __init__(self) -> None:
        self._parser = Parser(GO_LANGUAGE)

    def parse_file(self, path: Path) -> SourceFile:
        """Parse one ``.go`` file.

        Raises:
            SourceParseError: If the file cannot be read.
        """
        try:
            content = path.read_bytes()
        except OSError as exc:
            raise SourceParseError(f"Cannot read {path}: {exc}") from exc
        return self.parse_source(content, path)

    def parse_source(
        self, source: Union[str, bytes], path: Path = Path("<source>")
    ) -> SourceFile:
        """Parse in-memory Go source. *path* is recorded on the result only."""
        if isinstance(source, str):
            source = source.encode("utf-8")
        tree = self._parser.parse(source)
        return _build_file(tree.root_node, path)

    def parse_directory(self, directory: Path) -> list[Package]:
        """Parse every Go source file directly inside *directory*.

        Dot-prefixed files and non-``.go`` files are skipped. Files are
        grouped by their package clause, so a directory with an external
        ``_test`` package yields two packages.

        Raises:
            SourceParseError: If the directory or one of its files cannot
                be read.
        """
        try:
            entries = sorted(directory.iterdir())
        except OSError as exc:
            raise SourceParseError(f"Cannot list {directory}: {exc}") from exc

        packages: dict[str, Package] = {}
        for entry in entries:
            if not is_go_source(entry):
                continue
            source = self.parse_file(entry)
            if not source.package:
                continue
            package = packages.get(source.package)
            if package is None:
                package = packages[source.package] = Package(source.package, directory)
            package.files.append(source)
        return list(packages.values())

    def package_name(self, directory: Path) -> Optional[str]:
        """Return the first package clause found in *directory*, if any."""
        try:
            entries = sorted(directory.iterdir())
        except OSError:
            return None
        for entry in entries:
            if not is_go_source(entry):
                continue
            try:
                source = self.parse_file(entry)
            except SourceParseError:
                continue
            if source.package:
                return source.package
        return None


def is_go_source(path: Path) -> bool:
    """True for regular ``.go`` files whose name does not start with a dot."""
    return path.suffix == ".go" and not path.name.startswith(".") and path.is_file()


# ------------------------------------------------------------------ #
# Lowering
# ------------------------------------------------------------------ #


def _text(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _line(node: Node) -> int:
    return node.start_point[0] + 1


def _build_file(root: Node, path: Path) -> SourceFile:
    source = SourceFile(path=path, package="", has_error=root.has_error)
    source.comments = [
        Comment(_text(node), _line(node), node.end_point[0] + 1)
        for node in _iter_comments(root)
    ]
    for node, doc in _with_docs(root.children):
        kind = node.type
        if kind == "package_clause":
            for child in node.named_children:
                if child.type == "package_identifier":
                    source.package = _text(child)
        elif kind == "import_declaration":
            source.imports.extend(_imports(node))
        elif kind == "type_declaration":
            source.types.extend(_type_specs(node, doc))
        elif kind == "const_declaration":
            source.consts.extend(_const_specs(node))
        elif kind in ("function_declaration", "method_declaration"):
            source.funcs.append(_func_decl(node, doc))
    return source


def _iter_comments(root: Node) -> Iterator[Node]:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "comment":
            yield node
            continue
        stack.extend(reversed(node.children))


def _with_docs(children: Iterable[Node]) -> Iterator[tuple[Node, list[Node]]]:
    """Pair each named non-comment node with its doc comment group."""
    group: list[Node] = []
    prev_end = -1
    for node in children:
        if node.type == "comment":
            if node.start_point[0] == prev_end:
                # trailing comment on a code line
                group = []
                continue
            if group and node.start_point[0] > group[-1].end_point[0] + 1:
                group = []
            group.append(node)
            continue
        if not node.is_named:
            # punctuation and statement terminators; a "\n" terminator ends on the next row
            prev_end = node.start_point[0]
            continue
        doc = group if group and group[-1].end_point[0] == node.start_point[0] - 1 else []
        yield node, doc
        group = []
        prev_end = node.end_point[0]


def _doc_text(comments: list[Node]) -> Optional[str]:
    lines: list[str] = []
    for comment in comments:
        lines.extend(comment_lines(_text(comment)))
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines) if lines else None


def _specs(node: Node, *kinds: str) -> Iterator[Node]:
    """Specs of a declaration, whether written singly or in a parenthesised group."""
    for child in node.named_children:
        if child.type in kinds:
            yield child
        elif child.type.endswith("_list"):
            yield from _specs(child, *kinds)


def _imports(node: Node) -> list[ImportSpec]:
    result = []
    for spec in _specs(node, "import_spec"):
        name_node = spec.child_by_field_name("name")
        result.append(
            ImportSpec(
                path=unquote(_text(spec.child_by_field_name("path"))),
                name=_text(name_node) if name_node is not None else None,
                line=_line(spec),
            )
        )
    return result


def _type_specs(node: Node, doc: list[Node]) -> list[TypeSpec]:
    result = []
    for spec, spec_doc in _with_docs(node.children):
        if spec.type not in ("type_spec", "type_alias"):
            continue
        result.append(
            TypeSpec(
                name=_text(spec.child_by_field_name("name")),
                type=_expr(spec.child_by_field_name("type")),
                doc=_doc_text(spec_doc or doc),
                alias=spec.type == "type_alias",
                line=_line(spec),
            )
        )
    return result


def _const_specs(node: Node) -> list[ConstSpec]:
    result = []
    for spec in _specs(node, "const_spec"):
        type_node = spec.child_by_field_name("type")
        result.append(
            ConstSpec(
                names=[_text(n) for n in spec.children_by_field_name("name")],
                type=_expr(type_node) if type_node is not None else None,
                values=_expr_list(spec.child_by_field_name("value")),
                line=_line(spec),
                column=spec.start_point[1],
            )
        )
    return result


def _params(node: Optional[Node]) -> list[Param]:
    if node is None:
        return []
    result = []
    for child in node.named_children:
        if child.type not in ("parameter_declaration", "variadic_parameter_declaration"):
            continue
        result.append(
            Param(
                names=[_text(n) for n in child.children_by_field_name("name")],
                type=_expr(child.child_by_field_name("type")),
                variadic=child.type == "variadic_parameter_declaration",
            )
        )
    return result


def _func_decl(node: Node, doc: list[Node]) -> FuncDecl:
    receiver = None
    if node.type == "method_declaration":
        receivers = _params(node.child_by_field_name("receiver"))
        receiver = receivers[0] if receivers else None
    func = FuncDecl(
        name=_text(node.child_by_field_name("name")),
        receiver=receiver,
        params=_params(node.child_by_field_name("parameters")),
        doc=[_text(c) for c in doc],
        line=_line(node),
    )
    body = node.child_by_field_name("body")
    if body is not None:
        func.body = [stmt for stmt in map(_stmt, _statements(body)) if stmt is not None]
        for assign in _assignments(body):
            for target, value in zip(assign.targets, assign.values):
                if isinstance(target, Ident):
                    func.locals[target.name] = value
    return func


def _statements(block: Node) -> Iterator[Node]:
    for child in block.named_children:
        if child.type == "statement_list":
            yield from _statements(child)
        elif child.type != "comment":
            yield child


def _stmt(node: Node) -> Optional[Stmt]:
    kind = node.type
    if kind in ("short_var_declaration", "assignment_statement"):
        return Assign(
            targets=_expr_list(node.child_by_field_name("left")),
            values=_expr_list(node.child_by_field_name("right")),
            line=_line(node),
        )
    if kind == "var_declaration":
        targets: list[Expr] = []
        values: list[Expr] = []
        for spec in _specs(node, "var_spec"):
            names = [Ident(_text(n)) for n in spec.children_by_field_name("name")]
            specs_values = _expr_list(spec.child_by_field_name("value"))
            targets.extend(names)
            values.extend(specs_values)
            # keep targets and values aligned when a spec has no initializer
            values.extend(Unknown("zero", "") for _ in range(len(names) - len(specs_values)))
        return Assign(targets=targets, values=values, line=_line(node))
    if kind == "expression_statement":
        inner = node.named_children
        return ExprStmt(_expr(inner[0]) if inner else Unknown(kind, ""), line=_line(node))
    return None


def _assignments(node: Node) -> Iterator[Assign]:
    """Every assignment in a function body, nested blocks included, in source order."""
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type in ("short_var_declaration", "assignment_statement", "var_declaration"):
            stmt = _stmt(current)
            if isinstance(stmt, Assign):
                yield stmt
        if current.type == "func_literal":
            continue
        stack.extend(reversed(current.named_children))


def _expr_list(node: Optional[Node]) -> list[Expr]:
    if node is None:
        return []
    if node.type == "expression_list":
        return [_expr(child) for child in node.named_children if child.type != "comment"]
    return [_expr(node)]


def _fields(node: Node) -> list[Field]:
    result = []
    for decl_list in node.named_children:
        if decl_list.type != "field_declaration_list":
            continue
        for decl in decl_list.named_children:
            if decl.type != "field_declaration":
                continue
            names = [_text(n) for n in decl.children_by_field_name("name")]
            tag_node = decl.child_by_field_name("tag")
            result.append(
                Field(
                    names=names,
                    type=_expr(decl.child_by_field_name("type")),
                    tag=unquote(_text(tag_node)) if tag_node is not None else None,
                    pointer=not names and any(c.type == "*" for c in decl.children),
                    line=_line(decl),
                )
            )
    return result


def _expr(node: Optional[Node]) -> Expr:
    """Lower one expression or type node."""
    if node is None:
        return Unknown("missing", "")
    kind = node.type
    if kind in _IDENTIFIERS or kind in _KEYWORD_VALUES:
        return Ident(_text(node))
    if kind == "selector_expression":
        return Selector(
            _expr(node.child_by_field_name("operand")),
            _text(node.child_by_field_name("field")),
        )
    if kind == "qualified_type":
        return Selector(
            Ident(_text(node.child_by_field_name("package"))),
            _text(node.child_by_field_name("name")),
        )
    if kind == "pointer_type":
        return Pointer(_expr(_first_named(node)))
    if kind == "slice_type":
        return ArrayType(_expr(node.child_by_field_name("element")))
    if kind in ("array_type", "implicit_length_array_type"):
        length = node.child_by_field_name("length")
        return ArrayType(
            _expr(node.child_by_field_name("element")),
            length=_text(length) if length is not None else "...",
        )
    if kind == "map_type":
        return MapType(
            _expr(node.child_by_field_name("key")),
            _expr(node.child_by_field_name("value")),
        )
    if kind == "interface_type":
        return InterfaceType(_text(node))
    if kind == "struct_type":
        return StructType(_fields(node))
    if kind == "call_expression":
        arguments = node.child_by_field_name("arguments")
        args = []
        if arguments is not None:
            args = [_expr(a) for a in arguments.named_children if a.type != "comment"]
        return Call(_expr(node.child_by_field_name("function")), args)
    if kind == "unary_expression":
        return Unary(
            _text(node.child_by_field_name("operator")),
            _expr(node.child_by_field_name("operand")),
        )
    if kind == "composite_literal":
        type_node = node.child_by_field_name("type")
        return CompositeLit(
            _expr(type_node) if type_node is not None else None,
            _elements(node.child_by_field_name("body")),
        )
    if kind in ("parenthesized_expression", "parenthesized_type"):
        return _expr(_first_named(node))
    if kind == "generic_type":
        return _expr(node.child_by_field_name("type"))
    if kind in _LITERAL_KINDS:
        return BasicLit(_LITERAL_KINDS[kind], _text(node))
    return Unknown(kind, _text(node))


def _elements(body: Optional[Node]) -> list[Expr]:
    if body is None:
        return []
    result = []
    for element in body.named_children:
        if element.type == "keyed_element":
            element = element.named_children[-1] if element.named_children else element
        if element.type == "literal_element":
            element = _first_named(element) or element
        if element.type != "comment":
            result.append(_expr(element))
    return result


def _first_named(node: Node) -> Optional[Node]:
    for child in node.named_children:
        if child.type != "comment":
            return child
    return None
