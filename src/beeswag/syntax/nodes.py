"""Closed set of Go syntax variants consumed by the analysers.

:class:`~beeswag.syntax.treesitter.GoParser` lowers tree-sitter concrete
syntax trees into these dataclasses. Only the shapes the generator needs
are modelled; anything else becomes :class:`Unknown` carrying its source
text, so every ``isinstance`` dispatch over :data:`Expr` ends in an
explicit fallback branch.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Union


# --- Expressions and type expressions ---


@dataclass
class Ident:
    """A bare identifier: ``User``, ``string``, ``ns``."""

    name: str


@dataclass
class Selector:
    """``operand.name``; a package-qualified type when *operand* is an :class:`Ident`."""

    operand: "Expr"
    name: str


@dataclass
class Pointer:
    """``*elem`` in type position."""

    elem: "Expr"


@dataclass
class ArrayType:
    """``[]elem`` (slice, ``length`` is ``None``) or ``[N]elem``."""

    elem: "Expr"
    length: Optional[str] = None


@dataclass
class MapType:
    key: "Expr"
    value: "Expr"


@dataclass
class InterfaceType:
    text: str = "interface{}"


@dataclass
class StructType:
    fields: list["Field"] = field(default_factory=list)


@dataclass
class Call:
    """``func(args...)``."""

    func: "Expr"
    args: list["Expr"] = field(default_factory=list)


@dataclass
class Unary:
    """``op operand``; ``&pkg.Type{}`` is ``Unary("&", CompositeLit(...))``."""

    op: str
    operand: "Expr"


@dataclass
class CompositeLit:
    type: Optional["Expr"]
    elements: list["Expr"] = field(default_factory=list)


@dataclass
class BasicLit:
    """A literal token.

    ``kind`` is one of ``INT``, ``FLOAT``, ``IMAG``, ``CHAR`` or ``STRING``
    and ``value`` is the literal exactly as written, quotes included.
    """

    kind: str
    value: str


@dataclass
class Unknown:
    """Any construct the analysers do not interpret."""

    kind: str
    text: str


Expr = Union[
    Ident,
    Selector,
    Pointer,
    ArrayType,
    MapType,
    InterfaceType,
    StructType,
    Call,
    Unary,
    CompositeLit,
    BasicLit,
    Unknown,
]


# --- Declarations ---


@dataclass
class Field:
    """One struct field declaration.

    A declaration may name several fields (``A, B int``); an embedded field
    has no names and ``pointer`` records an embedded ``*T``.
    """

    names: list[str]
    type: Expr
    tag: Optional[str] = None
    pointer: bool = False
    line: int = 0

    @property
    def embedded(self) -> bool:
        return not self.names


@dataclass
class ImportSpec:
    path: str
    name: Optional[str] = None
    line: int = 0


@dataclass
class TypeSpec:
    name: str
    type: Expr
    doc: Optional[str] = None
    alias: bool = False
    line: int = 0


@dataclass
class ConstSpec:
    """One line of a ``const`` declaration.

    ``type`` is ``None`` for untyped constants, including those that rely
    on implicit repetition of the previous spec inside a group.
    """

    names: list[str]
    type: Optional[Expr]
    values: list[Expr] = field(default_factory=list)
    line: int = 0
    column: int = 0


@dataclass
class Param:
    """One declaration from a parameter or receiver list."""

    names: list[str]
    type: Expr
    variadic: bool = False


# --- Statements ---


@dataclass
class Assign:
    """``:=``, ``=`` and ``var`` statements; ``targets`` and ``values`` align by index."""

    targets: list[Expr]
    values: list[Expr]
    line: int = 0


@dataclass
class ExprStmt:
    expr: Expr
    line: int = 0


Stmt = Union[Assign, ExprStmt]


@dataclass
class Comment:
    text: str
    line: int
    end_line: int


@dataclass
class FuncDecl:
    """A function or method declaration.

    Attributes:
        doc: Raw text of the comment lines directly above the declaration,
            markers included, in source order.
        body: Top-level statements of the function body.
        locals: Scope table of names assigned anywhere in the body, mapped
            to their most recent initializing expression.
    """

    name: str
    receiver: Optional[Param] = None
    params: list[Param] = field(default_factory=list)
    doc: list[str] = field(default_factory=list)
    body: list[Stmt] = field(default_factory=list)
    locals: dict[str, Expr] = field(default_factory=dict)
    line: int = 0

    @property
    def receiver_type(self) -> Optional[str]:
        """Type name of a pointer receiver (``func (c *T)`` gives ``T``)."""
        if self.receiver is None or not isinstance(self.receiver.type, Pointer):
            return None
        elem = self.receiver.type.elem
        if isinstance(elem, Ident):
            return elem.name
        return type_string(elem)


# --- Containers ---


@dataclass
class SourceFile:
    path: Path
    package: str
    imports: list[ImportSpec] = field(default_factory=list)
    types: list[TypeSpec] = field(default_factory=list)
    consts: list[ConstSpec] = field(default_factory=list)
    funcs: list[FuncDecl] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)
    has_error: bool = False

    def import_for(self, local_name: str) -> Optional[ImportSpec]:
        """Return the import bound to *local_name* in this file.

        Unaliased imports bind the last element of their path.
        """
        for spec in self.imports:
            if spec.name == local_name:
                return spec
            if spec.name is None and spec.path.rsplit("/", 1)[-1] == local_name:
                return spec
        return None

    def methods(self) -> Iterator[FuncDecl]:
        for func in self.funcs:
            if func.receiver is not None:
                yield func


@dataclass
class Package:
    name: str
    directory: Path
    files: list[SourceFile] = field(default_factory=list)

    def find_type(self, name: str) -> Optional[tuple[SourceFile, TypeSpec]]:
        for source in self.files:
            for spec in source.types:
                if spec.name == name:
                    return source, spec
        return None

    def consts(self) -> Iterator[tuple[SourceFile, ConstSpec]]:
        for source in self.files:
            for spec in source.consts:
                yield source, spec


# --- Helpers ---


def type_string(expr: Optional[Expr]) -> str:
    """Render a type expression back to Go source form."""
    if expr is None:
        return ""
    if isinstance(expr, Ident):
        return expr.name
    if isinstance(expr, Selector):
        return f"{type_string(expr.operand)}.{expr.name}"
    if isinstance(expr, Pointer):
        return "*" + type_string(expr.elem)
    if isinstance(expr, ArrayType):
        return f"[{expr.length or ''}]{type_string(expr.elem)}"
    if isinstance(expr, MapType):
        return f"map[{type_string(expr.key)}]{type_string(expr.value)}"
    if isinstance(expr, InterfaceType):
        return expr.text
    if isinstance(expr, StructType):
        return "struct{}"
    if isinstance(expr, Unary):
        return expr.op + type_string(expr.operand)
    if isinstance(expr, CompositeLit):
        return type_string(expr.type) + "{}"
    if isinstance(expr, BasicLit):
        return expr.value
    if isinstance(expr, Call):
        return type_string(expr.func) + "(...)"
    return expr.text


_BLOCK_RE = re.compile(r"^/\*|\*/$")


def comment_lines(text: str) -> list[str]:
    """Strip comment markers from *text* and return its stripped lines.

    ``// @Title x`` gives ``["@Title x"]``; a block comment yields one entry
    per line with leading ``*`` decorations removed.
    """
    if text.startswith("//"):
        return [text[2:].strip()]
    body = _BLOCK_RE.sub("", text.strip())
    lines = []
    for line in body.splitlines():
        line = line.strip()
        if line.startswith("*"):
            line = line[1:].strip()
        lines.append(line)
    return lines


_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
    "'": "'",
    '"': '"',
}
_ESCAPE_RE = re.compile(r"\\(x[0-9a-fA-F]{2}|u[0-9a-fA-F]{4}|U[0-9a-fA-F]{8}|[0-7]{3}|.)")


def _unescape(match: re.Match) -> str:
    token = match.group(1)
    if token[0] in "xuU":
        return chr(int(token[1:], 16))
    if token[0].isdigit():
        return chr(int(token, 8))
    return _ESCAPES.get(token, "\\" + token)


def unquote(literal: str) -> str:
    """Return the value of a Go string literal (interpreted or raw)."""
    if len(literal) >= 2 and literal[0] == literal[-1] == "`":
        return literal[1:-1]
    if len(literal) >= 2 and literal[0] == literal[-1] == '"':
        return _ESCAPE_RE.sub(_unescape, literal[1:-1])
    return literal


def string_value(expr: Optional[Expr]) -> Optional[str]:
    """The unquoted value of a string :class:`BasicLit`, else ``None``."""
    if isinstance(expr, BasicLit) and expr.kind == "STRING":
        return unquote(expr.value)
    return None
