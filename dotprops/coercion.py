"""
dotprops Coercion - Strings <-> primitive scalars.

Parsing is strict and never raises: anything that is not a well-formed
value of the requested kind comes back as None.

Canonical text forms (what append_* writes):
  - int/long: decimal digits, optional leading '-'
  - double:   repr(float), e.g. "12.12", "1e+20", "inf", "nan"
  - boolean:  "true" / "false"
  - char:     the single character itself
"""

from __future__ import annotations

import enum
import re
from typing import Any

INT_MIN, INT_MAX = -(2 ** 31), 2 ** 31 - 1
LONG_MIN, LONG_MAX = -(2 ** 63), 2 ** 63 - 1

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_DOUBLE_RE = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)


class Kind(enum.Enum):
    """Scalar kinds the store can hold without the binary fallback."""

    INT = "int"
    LONG = "long"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    CHAR = "char"
    STRING = "string"


def _parse_integer(text: str | None, low: int, high: int) -> int | None:
    if text is None or not _INTEGER_RE.fullmatch(text):
        return None
    value = int(text)
    if not low <= value <= high:
        return None
    return value


def parse_int(text: str | None) -> int | None:
    return _parse_integer(text, INT_MIN, INT_MAX)


def parse_long(text: str | None) -> int | None:
    return _parse_integer(text, LONG_MIN, LONG_MAX)


def parse_double(text: str | None) -> float | None:
    if text is None or not _DOUBLE_RE.fullmatch(text):
        return None
    return float(text)


def parse_boolean(text: str | None) -> bool | None:
    if text is None:
        return None
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return None


def parse_char(text: str | None) -> str | None:
    if text is not None and len(text) == 1:
        return text
    return None


def parse_string(text: str | None) -> str | None:
    return text


_PARSERS = {
    Kind.INT: parse_int,
    Kind.LONG: parse_long,
    Kind.DOUBLE: parse_double,
    Kind.BOOLEAN: parse_boolean,
    Kind.CHAR: parse_char,
    Kind.STRING: parse_string,
}


def parse(kind: Kind, text: str | None) -> Any:
    """Parse text as the given kind. Returns None when it does not parse."""
    return _PARSERS[kind](text)


def to_text(kind: Kind, value: Any) -> str:
    """Canonical text form of a scalar. Raises ValueError if out of range."""
    if kind is Kind.INT or kind is Kind.LONG:
        number = int(value)
        low, high = (INT_MIN, INT_MAX) if kind is Kind.INT else (LONG_MIN, LONG_MAX)
        if not low <= number <= high:
            raise ValueError(f"{number} does not fit in a {kind.value}")
        return str(number)
    if kind is Kind.DOUBLE:
        return repr(float(value))
    if kind is Kind.BOOLEAN:
        return "true" if value else "false"
    if kind is Kind.CHAR:
        text = str(value)
        if len(text) != 1:
            raise ValueError(f"char value must be exactly one character, got {text!r}")
        return text
    return str(value)


# Python types that map onto a scalar kind without extra declaration.
# bool comes first: it is a subclass of int.
_TYPE_KINDS: tuple[tuple[type, Kind], ...] = (
    (bool, Kind.BOOLEAN),
    (int, Kind.LONG),
    (float, Kind.DOUBLE),
    (str, Kind.STRING),
)

_TYPE_NAMES = {tp.__name__: kind for tp, kind in _TYPE_KINDS}


def kind_for_type(tp: Any) -> Kind | None:
    """Kind for an annotation (exact type or its bare name), else None."""
    if isinstance(tp, str):
        return _TYPE_NAMES.get(tp.strip())
    for candidate, kind in _TYPE_KINDS:
        if tp is candidate:
            return kind
    return None


def kind_for_value(value: Any) -> Kind | None:
    """Kind for a runtime value, matched on its exact type."""
    return kind_for_type(type(value))
