"""Go syntax front-end: tree-sitter parsing lowered into tagged variants."""

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
    StructType,
    TypeSpec,
    Unary,
    Unknown,
    comment_lines,
    string_value,
    type_string,
    unquote,
)
from beeswag.syntax.treesitter import GoParser, is_go_source

__all__ = [
    "ArrayType",
    "Assign",
    "BasicLit",
    "Call",
    "Comment",
    "CompositeLit",
    "ConstSpec",
    "Expr",
    "ExprStmt",
    "Field",
    "FuncDecl",
    "GoParser",
    "Ident",
    "ImportSpec",
    "InterfaceType",
    "MapType",
    "Package",
    "Param",
    "Pointer",
    "Selector",
    "SourceFile",
    "StructType",
    "TypeSpec",
    "Unary",
    "Unknown",
    "comment_lines",
    "is_go_source",
    "string_value",
    "type_string",
    "unquote",
]
