"""Annotation field tokenizing and literal conversion.

These helpers are shared by the annotation grammar and the model resolver,
and have no dependencies on the rest of the package.
"""

from __future__ import annotations

from typing import Any, Optional

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_INT_TYPES = frozenset({"int", "int8", "int16", "int32", "int64", "integer"})
_UINT_TYPES = frozenset({"uint", "uint8", "uint16", "uint32", "uint64", "uintptr"})
_FLOAT_TYPES = frozenset({"float32", "float64", "number"})
_BOOL_TYPES = frozenset({"bool", "boolean"})


def split_fields(text: str) -> list[str]:
    """Split an annotation into whitespace separated fields.

    Whitespace inside double quotes does not split, and the quote
    characters themselves are dropped. An unmatched quote simply leaves
    the rest of the line quoted.

    >>> split_fields('query form string true "The email for login"')
    ['query', 'form', 'string', 'true', 'The email for login']
    """
    fields: list[str] = []
    current: list[str] = []
    started = False
    quoted = False
    for char in text:
        if char.isspace() and not quoted:
            if started:
                fields.append("".join(current))
                current = []
                started = False
            continue
        started = True
        if char == '"':
            quoted = not quoted
            continue
        current.append(char)
    if current:
        fields.append("".join(current))
    return fields


def peek_field(text: str) -> tuple[str, str]:
    """Return the first whitespace delimited token of *text* and the remainder."""
    text = text.strip()
    for index, char in enumerate(text):
        if char.isspace():
            return text[:index], text[index:].strip()
    return text, ""


def parse_bool(value: str) -> bool:
    """Parse a boolean the way Go's ``strconv.ParseBool`` does.

    Raises:
        ValueError: If *value* is not one of the accepted spellings.
    """
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"invalid boolean: {value!r}")


def convert_literal(value: str, type_name: Optional[str]) -> Any:
    """Convert an annotation or tag literal to the Python value of *type_name*.

    *type_name* may be a Go type (``int64``, ``float32``, ``bool``) or a
    Swagger type (``integer``, ``number``, ``boolean``). Any other type
    leaves *value* as a string.

    Raises:
        ValueError: If *value* is not a valid literal of *type_name*.
    """
    if type_name in _INT_TYPES:
        return int(value, 10)
    if type_name in _UINT_TYPES:
        number = int(value, 10)
        if number < 0:
            raise ValueError(f"invalid unsigned integer: {value!r}")
        return number
    if type_name in _FLOAT_TYPES:
        return float(value)
    if type_name in _BOOL_TYPES:
        return parse_bool(value)
    return value
