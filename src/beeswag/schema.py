"""Type/model resolution: Go type references to Swagger definitions.

:class:`ModelResolver` turns ``[package.]Type`` references found in
annotations and struct fields into :class:`~beeswag.models.Schema`
definitions. Resolution order:

1. the built-in scalar table (:data:`BASIC_TYPES`);
2. declared types in the session's :class:`~beeswag.packages.PackageIndex`,
   after loading the packages imported by the referencing file;
3. otherwise a warning and a placeholder object schema titled with the
   bare type name.

Results are memoized per controller. An in-progress marker is stored
before a type's fields are analysed, so self-referential and mutually
referential types terminate with a plain ``$ref``.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, NamedTuple, Optional, Union

from beeswag.literals import convert_literal, parse_bool
from beeswag.models import ControllerKey, Property, Schema
from beeswag.packages import Declaration
from beeswag.session import IN_PROGRESS
from beeswag.syntax import (
    ArrayType,
    BasicLit,
    Expr,
    Ident,
    InterfaceType,
    MapType,
    Pointer,
    Selector,
    SourceFile,
    StructType,
    TypeSpec,
    Unary,
    type_string,
    unquote,
)

if TYPE_CHECKING:
    from beeswag.session import AnalysisSession

DEFINITIONS_PREFIX = "#/definitions/"

#: Go built-in (and two well-known standard library) types as ``(type, format)``.
BASIC_TYPES: dict[str, tuple[str, Optional[str]]] = {
    "bool": ("boolean", None),
    "uint": ("integer", "int32"),
    "uint8": ("integer", "int32"),
    "uint16": ("integer", "int32"),
    "uint32": ("integer", "int32"),
    "uint64": ("integer", "int64"),
    "int": ("integer", "int64"),
    "int8": ("integer", "int32"),
    "int16": ("integer", "int32"),
    "int32": ("integer", "int32"),
    "int64": ("integer", "int64"),
    "uintptr": ("integer", "int64"),
    "float32": ("number", "float"),
    "float64": ("number", "double"),
    "string": ("string", None),
    "complex64": ("number", "float"),
    "complex128": ("number", "double"),
    "byte": ("string", "byte"),
    "rune": ("string", "byte"),
    "time.Time": ("string", "datetime"),
    "json.RawMessage": ("object", None),
}

# Field shape markers for non-scalar shapes.
OBJECT = "object"
MAP = "map"
STRUCT = "struct"
INTERFACE = "interface"

_DOC_DEFAULT_RE = re.compile(r"default\((.*)\)")
_TAG_RE = re.compile(r'([^\s:"]+):("(?:[^"\\]|\\.)*")')


def is_basic_type(name: str) -> bool:
    return name in BASIC_TYPES


def basic_schema(name: str) -> Schema:
    type_, format_ = BASIC_TYPES[name]
    return Schema(type=type_, format=format_)


def definition_ref(qualified: str) -> str:
    return DEFINITIONS_PREFIX + qualified


def parse_struct_tag(tag: Optional[str]) -> dict[str, str]:
    """Parse a struct tag like ``json:"name,omitempty" required:"true"``.

    Follows ``reflect.StructTag`` conventions: space separated
    ``key:"value"`` pairs with Go-quoted values. The first occurrence of a
    key wins.
    """
    result: dict[str, str] = {}
    if not tag:
        return result
    for key, value in _TAG_RE.findall(tag):
        result.setdefault(key, unquote(value))
    return result


class FieldShape(NamedTuple):
    """Classification of a struct field's type.

    Attributes:
        is_array: The field is a slice or array.
        type_ref: Go name of the (element) type, ``"map"`` for maps.
        builtin: ``(type, format)`` for built-in scalars, otherwise one of
            the markers :data:`OBJECT`, :data:`MAP`, :data:`STRUCT` or
            :data:`INTERFACE`.
    """

    is_array: bool
    type_ref: str
    builtin: Union[tuple[str, Optional[str]], str]

    @property
    def is_scalar(self) -> bool:
        return isinstance(self.builtin, tuple) and not self.is_array


def classify_field(expr: Expr) -> FieldShape:
    is_array = False
    if isinstance(expr, ArrayType):
        is_array = True
        expr = expr.elem
    if isinstance(expr, Pointer):
        expr = expr.elem
    if isinstance(expr, MapType):
        return FieldShape(is_array, MAP, MAP)
    if isinstance(expr, InterfaceType):
        return FieldShape(is_array, "json.RawMessage", INTERFACE)
    if isinstance(expr, StructType):
        return FieldShape(is_array, STRUCT, STRUCT)
    name = type_string(expr)
    return FieldShape(is_array, name, BASIC_TYPES.get(name, OBJECT))


def _literal(expr: Expr) -> Optional[BasicLit]:
    """A literal constant value, with unary sign folded in."""
    if isinstance(expr, BasicLit):
        return expr
    if (
        isinstance(expr, Unary)
        and expr.op in ("-", "+")
        and isinstance(expr.operand, BasicLit)
        and expr.operand.kind in ("INT", "FLOAT")
    ):
        return BasicLit(expr.operand.kind, expr.op + expr.operand.value)
    return None


def _enum_value(literal: BasicLit) -> Any:
    if literal.kind == "INT":
        return _go_int(literal.value)
    if literal.kind == "FLOAT":
        return float(literal.value.replace("_", ""))
    if literal.kind == "STRING":
        return unquote(literal.value)
    return literal.value


def _go_int(text: str) -> int:
    """Parse a Go integer literal; a bare leading ``0`` means octal (``010`` is 8)."""
    text = text.replace("_", "")
    digits = text.lstrip("+-")
    if len(digits) > 1 and digits[0] == "0" and digits.isdigit():
        return int(text, 8)
    return int(text, 0)


NestedRef = tuple[SourceFile, str]


class ModelResolver:
    """Resolves type references into ``Document.definitions`` entries."""

    def __init__(self, session: AnalysisSession) -> None:
        self._session = session

    # ------------------------------------------------------------------ #
    # Naming
    # ------------------------------------------------------------------ #

    def split_ref(self, source: SourceFile, type_ref: str) -> tuple[str, str, Optional[str]]:
        """Split *type_ref* into ``(package name, type name, import path)``.

        A package qualifier is looked up in the imports of *source*; an alias
        is translated to the imported package's real name. Unqualified names
        belong to the package of *source*.
        """
        type_ref = type_ref.lstrip("*")
        if "." not in type_ref:
            return source.package, type_ref, None
        qualifier, name = type_ref.rsplit(".", 1)
        spec = source.import_for(qualifier)
        if spec is None:
            return qualifier, name, None
        if spec.name and spec.name not in ("_", "."):
            directory = self._session.resolver.resolve(spec.path)
            real = self._session.resolver.real_package_name(directory) if directory else None
            return real or spec.path.rsplit("/", 1)[-1], name, spec.path
        return qualifier, name, spec.path

    def qualify(self, source: SourceFile, type_ref: str) -> str:
        """The definitions key of *type_ref*: always ``package.Type``."""
        if type_ref in BASIC_TYPES:
            return type_ref
        package, name, _ = self.split_ref(source, type_ref)
        return f"{package}.{name}"

    # ------------------------------------------------------------------ #
    # Resolution
    # ------------------------------------------------------------------ #

    def resolve(self, source: SourceFile, type_ref: str, scope: ControllerKey) -> tuple[str, Schema]:
        """Resolve *type_ref* for the controller *scope*.

        The per-controller cache is consulted first. On a miss the type is
        marked in progress, analysed, stored in the cache and in the
        document definitions, and its nested references are resolved in the
        context of the file that declared it.

        Returns:
            ``(qualified name, schema)``. For a type whose analysis is still
            in progress the schema is a bare reference.
        """
        cache = self._session.model_cache(scope)
        qualified = self.qualify(source, type_ref)
        cached = cache.get(qualified)
        if cached is IN_PROGRESS:
            return qualified, Schema(ref=definition_ref(qualified))
        if isinstance(cached, Schema):
            return qualified, cached

        cache[qualified] = IN_PROGRESS
        qualified, schema, nested = self.analyse(source, type_ref)
        cache[qualified] = schema
        self._session.document.definitions[qualified] = schema
        for nested_source, nested_ref in nested:
            self.resolve(nested_source, nested_ref, scope)
        return qualified, schema

    def resolve_ref(self, source: SourceFile, type_ref: str, scope: ControllerKey) -> str:
        """Resolve *type_ref* and return its ``#/definitions/...`` pointer."""
        qualified, _ = self.resolve(source, type_ref, scope)
        return definition_ref(qualified)

    def analyse(self, source: SourceFile, type_ref: str) -> tuple[str, Schema, list[NestedRef]]:
        """Structural analysis of one type, without caching.

        Returns:
            ``(qualified name, schema, nested references)`` where each nested
            reference is ``(declaring file, type reference)``.
        """
        qualified = self.qualify(source, type_ref)
        if type_ref in BASIC_TYPES:
            schema = basic_schema(type_ref)
            schema.title = type_ref.rsplit(".", 1)[-1]
            return qualified, schema, []

        package, name, import_path = self.split_ref(source, type_ref)
        resolver = self._session.resolver
        resolver.load_imports(source)
        if import_path is not None:
            resolver.load_package(import_path)
        declaration = self._session.index.find_type(package, name)
        if declaration is None:
            if qualified not in self._session.document.definitions:
                self._session.warn(f"Cannot find the object: {type_ref}")
            return qualified, Schema(title=name, type="object"), []

        nested: list[NestedRef] = []
        schema = self._declared(declaration, nested)
        return qualified, schema, nested

    # ------------------------------------------------------------------ #
    # Declared type shapes
    # ------------------------------------------------------------------ #

    def _ref(self, source: SourceFile, type_ref: str, nested: list[NestedRef]) -> str:
        nested.append((source, type_ref))
        return definition_ref(self.qualify(source, type_ref))

    def _declared(self, declaration: Declaration, nested: list[NestedRef]) -> Schema:
        spec = declaration.spec
        source = declaration.source
        expr = spec.type
        if isinstance(expr, Pointer):
            expr = expr.elem

        if isinstance(expr, ArrayType):
            return Schema(
                title=spec.name,
                type="array",
                items=self._items(source, expr.elem, nested),
            )
        if isinstance(expr, (Ident, Selector)):
            name = type_string(expr)
            if name in BASIC_TYPES:
                return self._named_scalar(declaration, name)
            return Schema(
                title=spec.name,
                type="object",
                all_of=[Schema(ref=self._ref(source, name, nested))],
            )
        if isinstance(expr, StructType):
            return self._struct(declaration, expr, nested)
        if isinstance(expr, MapType):
            return Schema(
                title=spec.name,
                type="object",
                additional_properties=self._property(source, expr.value, nested),
            )
        if isinstance(expr, InterfaceType):
            return Schema(title=spec.name, type="object")
        self._session.warn(
            f"Unsupported type shape for {source.package}.{spec.name}: {type_string(expr)}"
        )
        return Schema(title=spec.name, type="object")

    def _items(self, source: SourceFile, elem: Expr, nested: list[NestedRef]) -> Schema:
        if isinstance(elem, Pointer):
            elem = elem.elem
        if isinstance(elem, ArrayType):
            return Schema(type="array", items=self._items(source, elem.elem, nested))
        if isinstance(elem, MapType):
            return Schema(
                type="object",
                additional_properties=self._property(source, elem.value, nested),
            )
        if isinstance(elem, (Ident, Selector)):
            name = type_string(elem)
            if name in BASIC_TYPES:
                return basic_schema(name)
            return Schema(ref=self._ref(source, name, nested))
        return Schema(type="object")

    def _property(self, source: SourceFile, expr: Expr, nested: list[NestedRef]) -> Property:
        """Build the property for a field or map value type."""
        if isinstance(expr, Pointer):
            expr = expr.elem
        if isinstance(expr, ArrayType):
            return Property(type="array", items=self._property(source, expr.elem, nested))
        if isinstance(expr, MapType):
            return Property(
                type="object",
                additional_properties=self._property(source, expr.value, nested),
            )
        if isinstance(expr, (InterfaceType, StructType)):
            return Property(type="object")
        if isinstance(expr, (Ident, Selector)):
            name = type_string(expr)
            if name in BASIC_TYPES:
                type_, format_ = BASIC_TYPES[name]
                return Property(type=type_, format=format_)
            return Property(ref=self._ref(source, name, nested))
        self._session.warn(f"Unsupported field type in {source.path}: {type_string(expr)}")
        return Property(type="object")

    def _named_scalar(self, declaration: Declaration, builtin: str) -> Schema:
        """A named scalar type, with enum values from its typed constants."""
        spec: TypeSpec = declaration.spec
        schema = basic_schema(builtin)
        schema.title = spec.name
        examples: list[Any] = []
        for _, const in declaration.package.consts():
            if not isinstance(const.type, Ident) or const.type.name != spec.name:
                continue
            for name, value in zip(const.names, const.values):
                literal = _literal(value)
                if literal is None:
                    self._session.warn(
                        f"Enum value of {name} is not a literal: {type_string(value)}"
                    )
                    continue
                schema.enum.append(f"{name} = {literal.value}")
                try:
                    examples.append(_enum_value(literal))
                except ValueError:
                    self._session.warn(f"Cannot convert enum value {literal.value} of {name}")
                    examples.append(None)
        if examples:
            schema.example = examples[0]
        return schema

    def _struct(self, declaration: Declaration, struct: StructType, nested: list[NestedRef]) -> Schema:
        source = declaration.source
        type_name = declaration.spec.name
        properties: dict[str, Property] = {}
        required: list[str] = []
        refs: list[Schema] = []

        for field in struct.fields:
            tags = parse_struct_tag(field.tag)
            shape = classify_field(field.type)
            json_values = tags["json"].split(",") if tags.get("json") else []

            if field.embedded:
                if field.pointer:
                    continue
                if json_values:
                    if json_values[0] == "-":
                        continue
                    if json_values[0]:
                        properties[json_values[0]] = self._property(source, field.type, nested)
                        continue
                if shape.builtin == OBJECT and not shape.is_array:
                    refs.append(Schema(ref=self._ref(source, shape.type_ref, nested)))
                continue

            if json_values and json_values[0] == "-":
                continue
            if tags.get("ignore"):
                continue
            if shape.builtin == STRUCT:
                self._session.warn(
                    f"Temporary structure is not supported: "
                    f"{source.package}.{type_name}.{field.names[0]}"
                )

            template = self._property(source, field.type, nested)
            if tags.get("description"):
                template.description = tags["description"]
            if tags.get("example") and shape.is_scalar:
                template.example = self._typed(tags["example"], shape.type_ref)
            default = self._default(tags, shape)
            if default is not None:
                template.default = default

            for field_name in field.names:
                name = field_name
                if len(field.names) == 1:
                    if json_values and json_values[0] not in ("", "omitempty"):
                        name = json_values[0]
                    thrift = tags.get("thrift", "").split(",")[0]
                    if thrift:
                        name = thrift
                properties[name] = template.model_copy(deep=True)
                if tags.get("required") and self._is_true(tags["required"]):
                    required.append(name)

        if refs:
            composed = list(refs)
            if properties:
                composed.append(Schema(type="object", properties=properties, required=required))
            return Schema(title=type_name, type="object", all_of=composed)
        return Schema(title=type_name, type="object", properties=properties, required=required)

    # ------------------------------------------------------------------ #
    # Tag values
    # ------------------------------------------------------------------ #

    def _default(self, tags: dict[str, str], shape: FieldShape) -> Any:
        if "default" in tags:
            return self._typed(tags["default"], shape.type_ref)
        doc = tags.get("doc")
        if not doc:
            return None
        match = _DOC_DEFAULT_RE.search(doc)
        if match is None:
            self._session.warn(f"Invalid default value: {doc}")
            return None
        return self._typed(match.group(1), shape.type_ref)

    def _typed(self, value: str, type_name: str) -> Any:
        try:
            return convert_literal(value, type_name)
        except ValueError:
            self._session.warn(f"Cannot convert {value!r} to {type_name}")
            return value

    @staticmethod
    def _is_true(value: str) -> bool:
        try:
            return parse_bool(value)
        except ValueError:
            return True
