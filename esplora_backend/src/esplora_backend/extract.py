"""
Typed lookups into explorer JSON responses.

Bodies are decoded with floats as Decimal so fee rates scale exactly. Paths
are either dotted strings ("data.raw_block") or sequences of keys, the latter
for keys that come from data (block hashes) or contain dots.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from decimal import Decimal
from typing import Any

from esplora_backend.errors import ConversionError, FieldAbsentError, ParseError

JsonPath = str | Sequence[str]

# strtoul-style prefix: optional whitespace, optional plus sign, then digits
_UNSIGNED_PREFIX = re.compile(r"\s*\+?(\d+)", re.ASCII)

MAX_U32 = 0xFFFFFFFF

_MISSING = object()


def parse_or_fail(body: str) -> Any:
    """Decode a response body, raising ParseError if it is not JSON."""
    try:
        return json.loads(body, parse_float=Decimal)
    except (json.JSONDecodeError, TypeError) as e:
        snippet = body[:80] if isinstance(body, str) else repr(body)
        raise ParseError(f"json error ({snippet!r}): {e}") from e


def _split(path: JsonPath) -> list[str]:
    if isinstance(path, str):
        return [part for part in path.split(".") if part]
    return list(path)


def format_path(path: JsonPath) -> str:
    return ".".join(_split(path))


def _lookup(document: Any, path: JsonPath) -> Any:
    node = document
    for key in _split(path):
        if isinstance(node, dict):
            if key not in node:
                return _MISSING
            node = node[key]
        elif isinstance(node, list) and key.isdigit():
            index = int(key)
            if index >= len(node):
                return _MISSING
            node = node[index]
        else:
            return _MISSING
    return node


def value_at(document: Any, path: JsonPath) -> Any:
    """Return the raw value at path, raising FieldAbsentError when missing."""
    value = _lookup(document, path)
    if value is _MISSING:
        raise FieldAbsentError(format_path(path))
    return value


def string_at(document: Any, path: JsonPath) -> str:
    value = value_at(document, path)
    if not isinstance(value, str):
        raise ConversionError(f"{format_path(path)} is not a string: {value!r}")
    return value


def integer_at(document: Any, path: JsonPath) -> int:
    value = value_at(document, path)
    # bool is an int subclass; a JSON true is never an amount
    if isinstance(value, bool):
        raise ConversionError(f"{format_path(path)} is not an integer: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal) and value == value.to_integral_value():
        return int(value)
    raise ConversionError(f"{format_path(path)} is not an integer: {value!r}")


def decimal_at(document: Any, path: JsonPath) -> Decimal:
    value = value_at(document, path)
    if isinstance(value, bool) or not isinstance(value, int | Decimal):
        raise ConversionError(f"{format_path(path)} is not a number: {value!r}")
    return Decimal(value)


def bool_at(document: Any, path: JsonPath) -> bool:
    value = value_at(document, path)
    if not isinstance(value, bool):
        raise ConversionError(f"{format_path(path)} is not a boolean: {value!r}")
    return value


def array_element_at(document: Any, array_path: JsonPath, index: int) -> Any:
    """Return element `index` of the array at array_path."""
    array = value_at(document, array_path)
    if not isinstance(array, list):
        raise ConversionError(f"{format_path(array_path)} is not an array")
    if index < 0 or index >= len(array):
        raise FieldAbsentError(f"{format_path(array_path)}[{index}]")
    return array[index]


def parse_unsigned(text: str) -> int | None:
    """
    Parse the leading decimal digits of text as an unsigned 32-bit integer.

    Returns None when no digits can be read or the value overflows; that is
    the "unparseable" tag, kept distinct from a legitimate zero.
    """
    match = _UNSIGNED_PREFIX.match(text)
    if match is None:
        return None
    value = int(match.group(1))
    if value > MAX_U32:
        return None
    return value


def require_nonzero(value: int | None, text: str, what: str) -> int:
    """
    Apply the zero-sentinel policy to a parse_unsigned result.

    Block heights and output indexes read through this helper treat zero the
    same as unparseable input. Output index 0 is therefore not queryable via
    getutxout.
    """
    if value is None:
        raise ConversionError(f"invalid {what} conversion on {text!r}")
    if value == 0:
        raise ConversionError(f"invalid {what} conversion on {text!r} (zero is rejected)")
    return value
