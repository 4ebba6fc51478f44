"""
dotprops Binary Fallback - Opaque values as Base64 text.

Used for dataclass members with no scalar kind and for values with no
registered translator.
Same-process contract only: dataclass values are tagged with their
import path. Decoding never imports anything. A tag resolves only to a
dataclass in a module that is already loaded, or, when an allowlist of
types is passed, only to one of those types.

Container layout (before Base64):
    b"DPB" <version:1>            <- Magic + format version
    <tag:1> <payload>             <- One encoded value

Payloads:
    N / T / F                     <- None / True / False (no payload)
    I <len:4> <signed big-endian bytes>
    D <8-byte IEEE-754 double>
    S <len:4> <utf-8>             <- str
    B <len:4> <raw>               <- bytes
    L / U / E / Z <count:4> values...   <- list / tuple / set / frozenset
    M <count:4> (key value)...    <- dict
    Q <16 bytes>                  <- uuid.UUID
    O <len:4> <module:qualname> <count:4> (<len:4> <name> value)...

All lengths and counts are 4-byte big-endian unsigned.
"""

from __future__ import annotations

import base64
import binascii
import dataclasses
import struct
import sys
import uuid
from typing import Any, Callable, Iterable

from dotprops.errors import DecodeError, UnsupportedTypeError

MAGIC = b"DPB"
VERSION = 1
HEADER = MAGIC + bytes([VERSION])

MAX_NESTING_DEPTH = 64

_LEN = struct.Struct(">I")
_DOUBLE = struct.Struct(">d")

_SEQUENCE_TAGS: dict[type, bytes] = {
    list: b"L",
    tuple: b"U",
    set: b"E",
    frozenset: b"Z",
}
_SEQUENCE_TYPES: dict[bytes, Callable[[list], Any]] = {
    b"L": list,
    b"U": tuple,
    b"E": set,
    b"Z": frozenset,
}


# =============================================================================
# Encoding
# =============================================================================

def encode(value: Any) -> str:
    """Encode a value to printable Base64 text."""
    buf = bytearray(HEADER)
    _pack(buf, value, 0)
    return base64.b64encode(bytes(buf)).decode("ascii")


def encode_bytes(value: Any) -> bytes:
    """Encode a value to the raw binary container (no Base64)."""
    buf = bytearray(HEADER)
    _pack(buf, value, 0)
    return bytes(buf)


def _append_blob(buf: bytearray, data: bytes) -> None:
    buf.extend(_LEN.pack(len(data)))
    buf.extend(data)


def _pack(buf: bytearray, value: Any, depth: int) -> None:
    if depth > MAX_NESTING_DEPTH:
        raise UnsupportedTypeError(f"Value nested deeper than {MAX_NESTING_DEPTH} levels")

    tp = type(value)
    if value is None:
        buf.extend(b"N")
    elif tp is bool:
        buf.extend(b"T" if value else b"F")
    elif tp is int:
        buf.extend(b"I")
        _append_blob(buf, value.to_bytes(value.bit_length() // 8 + 1, "big", signed=True))
    elif tp is float:
        buf.extend(b"D")
        buf.extend(_DOUBLE.pack(value))
    elif tp is str:
        buf.extend(b"S")
        _append_blob(buf, value.encode("utf-8", "surrogatepass"))
    elif tp is bytes:
        buf.extend(b"B")
        _append_blob(buf, value)
    elif tp in _SEQUENCE_TAGS:
        buf.extend(_SEQUENCE_TAGS[tp])
        items = list(value)
        buf.extend(_LEN.pack(len(items)))
        for item in items:
            _pack(buf, item, depth + 1)
    elif tp is dict:
        buf.extend(b"M")
        buf.extend(_LEN.pack(len(value)))
        for key, item in value.items():
            _pack(buf, key, depth + 1)
            _pack(buf, item, depth + 1)
    elif tp is uuid.UUID:
        buf.extend(b"Q")
        buf.extend(value.bytes)
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        buf.extend(b"O")
        _append_blob(buf, type_tag(tp).encode("utf-8"))
        members = dataclasses.fields(value)
        buf.extend(_LEN.pack(len(members)))
        for f in members:
            _append_blob(buf, f.name.encode("utf-8"))
            _pack(buf, getattr(value, f.name), depth + 1)
    else:
        raise UnsupportedTypeError(
            f"No binary encoding for values of type {tp.__module__}.{tp.__qualname__}"
        )


def type_tag(tp: type) -> str:
    """Import path used to find a dataclass again on decode."""
    if "<locals>" in tp.__qualname__:
        raise UnsupportedTypeError(
            f"Dataclass {tp.__qualname__} is defined inside a function and cannot be resolved later"
        )
    return _qualified_name(tp)


# =============================================================================
# Decoding
# =============================================================================

def decode(text: str, types: Iterable[type] | None = None) -> Any:
    """Decode Base64 text produced by encode(). See decode_bytes() for types."""
    try:
        data = base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError, ValueError) as e:
        raise DecodeError(f"Not valid Base64: {e}") from e
    return decode_bytes(data, types)


def decode_bytes(data: bytes, types: Iterable[type] | None = None) -> Any:
    """Decode a raw binary container produced by encode_bytes().

    types, when given, is the complete set of dataclasses the container may
    hold; any other type tag is a DecodeError.
    """
    if not data.startswith(MAGIC):
        raise DecodeError("Missing binary container magic")
    if len(data) < len(HEADER):
        raise DecodeError("Truncated binary container header")
    version = data[len(MAGIC)]
    if version != VERSION:
        raise DecodeError(f"Unsupported binary container version: {version}")

    allowed = None if types is None else {_qualified_name(t): t for t in types}
    cursor = _Cursor(data, len(HEADER), allowed)
    value = cursor.value(0)
    if cursor.pos != len(data):
        raise DecodeError(f"{len(data) - cursor.pos} trailing bytes after value")
    return value


def resolve_type(tag: str, allowed: dict[str, type] | None = None) -> type:
    """Resolve a "module:qualname" tag to a dataclass without importing anything."""
    module_name, sep, qualname = tag.partition(":")
    if not sep or not module_name or not qualname:
        raise DecodeError(f"Malformed type tag: {tag!r}")
    if allowed is not None:
        if tag not in allowed:
            raise DecodeError(f"Type {tag!r} is not one of the allowed types")
        obj: Any = allowed[tag]
    else:
        module = sys.modules.get(module_name)
        if module is None:
            raise DecodeError(f"Cannot resolve type {tag!r}: module {module_name!r} is not loaded")
        obj = module
        try:
            for part in qualname.split("."):
                obj = getattr(obj, part)
        except AttributeError as e:
            raise DecodeError(f"Cannot resolve type {tag!r}: {e}") from e
    if not (isinstance(obj, type) and dataclasses.is_dataclass(obj)):
        raise DecodeError(f"Type {tag!r} is not a dataclass")
    return obj


def _qualified_name(tp: type) -> str:
    return f"{tp.__module__}:{tp.__qualname__}"


class _Cursor:
    """Bounds-checked reader over the container bytes."""

    def __init__(self, data: bytes, pos: int, allowed: dict[str, type] | None = None) -> None:
        self.data = data
        self.pos = pos
        self.allowed = allowed

    def take(self, n: int) -> bytes:
        end = self.pos + n
        if end > len(self.data):
            raise DecodeError("Truncated binary container")
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def length(self) -> int:
        return _LEN.unpack(self.take(_LEN.size))[0]

    def blob(self) -> bytes:
        return self.take(self.length())

    def text(self) -> str:
        try:
            return self.blob().decode("utf-8", "surrogatepass")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Invalid UTF-8 in binary container: {e}") from e

    def value(self, depth: int) -> Any:
        if depth > MAX_NESTING_DEPTH:
            raise DecodeError(f"Value nested deeper than {MAX_NESTING_DEPTH} levels")

        tag = self.take(1)
        if tag == b"N":
            return None
        if tag == b"T":
            return True
        if tag == b"F":
            return False
        if tag == b"I":
            return int.from_bytes(self.blob(), "big", signed=True)
        if tag == b"D":
            return _DOUBLE.unpack(self.take(_DOUBLE.size))[0]
        if tag == b"S":
            return self.text()
        if tag == b"B":
            return self.blob()
        if tag in _SEQUENCE_TYPES:
            count = self.length()
            items = [self.value(depth + 1) for _ in range(count)]
            try:
                return _SEQUENCE_TYPES[tag](items)
            except TypeError as e:  # unhashable set member
                raise DecodeError(f"Invalid collection in binary container: {e}") from e
        if tag == b"M":
            count = self.length()
            result = {}
            for _ in range(count):
                key = self.value(depth + 1)
                try:
                    result[key] = self.value(depth + 1)
                except TypeError as e:
                    raise DecodeError(f"Unhashable dict key in binary container: {e}") from e
            return result
        if tag == b"Q":
            return uuid.UUID(bytes=self.take(16))
        if tag == b"O":
            return self._dataclass(depth)
        raise DecodeError(f"Unknown binary tag {tag!r}")

    def _dataclass(self, depth: int) -> Any:
        cls = resolve_type(self.text(), self.allowed)
        count = self.length()
        values = {}
        for _ in range(count):
            name = self.text()
            values[name] = self.value(depth + 1)
        return build_dataclass(cls, values)


def build_dataclass(cls: type, values: dict[str, Any]) -> Any:
    """Construct a dataclass from member values. init=False members are set afterwards."""
    members = {f.name: f for f in dataclasses.fields(cls)}
    unknown = set(values) - set(members)
    if unknown:
        raise DecodeError(f"{cls.__qualname__} has no members {sorted(unknown)!r}")
    init_args = {name: v for name, v in values.items() if members[name].init}
    try:
        obj = cls(**init_args)
    except TypeError as e:
        raise DecodeError(f"Cannot construct {cls.__qualname__}: {e}") from e
    for name, v in values.items():
        if not members[name].init:
            object.__setattr__(obj, name, v)
    return obj
