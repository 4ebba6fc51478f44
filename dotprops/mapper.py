"""
dotprops Object Mapper - Typed values <-> flat store entries.

Dispatch for a value stored under ``key``:
  1. A translator registered for the exact type handles everything
  2. Scalars (bool, int, float, str) are stored directly under ``key``
  3. Dataclasses are stored member by member under ``key.<member>``;
     members with no scalar kind go through the binary fallback whole
  4. Anything else goes through the binary fallback as Base64 text

Storable members are the dataclass fields. A member's kind comes from its
annotation, or from an explicit declaration for kinds Python has no
separate type for:

    @dataclass
    class Player:
        name: str = ""
        level: int = member(Kind.INT, default=0)
        grade: str = member(Kind.CHAR, default="A")
        tags: list[str] = field(default_factory=list)   # binary fallback
        owner: uuid.UUID | None = None                  # binary fallback
"""

from __future__ import annotations

import dataclasses
import logging
import re
import types
import typing
from typing import TYPE_CHECKING, Any, Iterable

from dotprops import binary
from dotprops.coercion import Kind, kind_for_type, kind_for_value, parse, to_text
from dotprops.errors import DecodeError, UnconstructibleTypeError
from dotprops.grammar import join_key
from dotprops.translators import TranslatorRegistry

if TYPE_CHECKING:
    from dotprops.store import DotProperties

logger = logging.getLogger(__name__)

KIND_METADATA = "dotprops.kind"

# Non-dataclass types that may be read back straight from the binary fallback
BINARY_TYPES = (list, tuple, set, frozenset, dict, bytes)

_OPTIONAL_RE = re.compile(r"(?:typing\.)?Optional\[(.+)\]")


def member(kind: Kind | None = None, **kwargs: Any) -> Any:
    """dataclasses.field() with an explicit storage kind."""
    metadata = dict(kwargs.pop("metadata", None) or {})
    if kind is not None:
        metadata[KIND_METADATA] = kind
    return dataclasses.field(metadata=metadata, **kwargs)


@dataclasses.dataclass(frozen=True)
class Member:
    """One storable member of a dataclass."""
    name: str
    annotation: Any
    kind: Kind | None
    init: bool


def _unwrap_optional(tp: Any) -> Any:
    if isinstance(tp, str):
        text = tp.strip()
        match = _OPTIONAL_RE.fullmatch(text)
        if match:
            return match.group(1).strip()
        parts = [p.strip() for p in text.split("|") if p.strip() != "None"]
        return parts[0] if len(parts) == 1 else text

    origin = typing.get_origin(tp)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return tp


def storable_members(cls: type) -> list[Member]:
    """Members of a dataclass type in declaration order."""
    if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
        raise UnconstructibleTypeError(f"{cls!r} is not a dataclass type")
    try:
        hints = typing.get_type_hints(cls)
    except (NameError, TypeError):
        # Forward references that cannot be resolved; fall back to raw annotations
        hints = {}

    members = []
    for f in dataclasses.fields(cls):
        annotation = _unwrap_optional(hints.get(f.name, f.type))
        kind = f.metadata.get(KIND_METADATA) or kind_for_type(annotation)
        members.append(Member(f.name, annotation, kind, f.init))
    return members


class ObjectMapper:
    """Stores and loads typed values through a DotProperties store."""

    def __init__(
        self,
        registry: TranslatorRegistry | None = None,
        binary_types: Iterable[type] | None = None,
    ) -> None:
        self.registry = registry if registry is not None else TranslatorRegistry()
        # None resolves dataclass tags against already loaded modules only
        self.binary_types = None if binary_types is None else tuple(binary_types)

    # -------------------------------------------------------------------------
    # Serialize
    # -------------------------------------------------------------------------

    def serialize(self, store: DotProperties, key: str, value: Any) -> None:
        translator = self.registry.lookup(type(value))
        if translator is not None:
            translator.serialize(key, store, value)
            return

        kind = kind_for_value(value)
        if kind is not None:
            store.append_string(key, to_text(kind, value))
            return

        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            for m in storable_members(type(value)):
                member_value = getattr(value, m.name)
                if member_value is not None:
                    self._serialize_member(store, join_key(key, m.name), m, member_value)
            store.save_properties()
            return

        store.append_string(key, binary.encode(value))

    def _serialize_member(self, store: DotProperties, key: str, m: Member, value: Any) -> None:
        if m.kind is not None:
            store.append_string(key, to_text(m.kind, value))
            return
        store.append_string(key, binary.encode(value))

    # -------------------------------------------------------------------------
    # Deserialize
    # -------------------------------------------------------------------------

    def deserialize(self, store: DotProperties, key: str, cls: type) -> Any:
        translator = self.registry.lookup(cls)
        if translator is not None:
            return translator.deserialize(key, store)

        kind = kind_for_type(cls)
        if kind is not None:
            return self._read_scalar(store, key, kind)

        if isinstance(cls, type) and dataclasses.is_dataclass(cls):
            return self._deserialize_dataclass(store, key, cls)

        if cls in BINARY_TYPES:
            value = self._read_binary(store, key)
            if type(value) is not cls:
                raise DecodeError(
                    f"{key!r} holds a {type(value).__qualname__}, not a {cls.__qualname__}"
                )
            return value

        raise UnconstructibleTypeError(
            f"Cannot build {cls!r}: register a translator or declare it as a dataclass"
        )

    def _deserialize_dataclass(self, store: DotProperties, key: str, cls: type) -> Any:
        values: dict[str, Any] = {}
        for m in storable_members(cls):
            member_key = join_key(key, m.name)
            if m.kind is not None:
                if store.get_string(member_key) is not None:
                    values[m.name] = self._read_scalar(store, member_key, m.kind)
                continue
            if store.get_string(member_key) is not None:
                values[m.name] = self._read_binary(store, member_key)
        return _construct(cls, values)

    def _read_scalar(self, store: DotProperties, key: str, kind: Kind) -> Any:
        text = store.get_string(key)
        if text is None:
            raise DecodeError(f"No entry stored under {key!r}")
        value = parse(kind, text)
        if value is None:
            raise DecodeError(f"{key!r}: {text!r} is not a valid {kind.value}")
        return value

    def _read_binary(self, store: DotProperties, key: str) -> Any:
        text = store.get_string(key)
        if text is None:
            raise DecodeError(f"No entry stored under {key!r}")
        return binary.decode(text, self.binary_types)


def _construct(cls: type, values: dict[str, Any]) -> Any:
    init_fields = {f.name for f in dataclasses.fields(cls) if f.init}
    try:
        obj = cls(**{k: v for k, v in values.items() if k in init_fields})
    except TypeError as e:
        raise UnconstructibleTypeError(f"Cannot construct {cls.__qualname__}: {e}") from e
    except ValueError as e:
        raise DecodeError(f"Stored members rejected by {cls.__qualname__}: {e}") from e
    for name, value in values.items():
        if name not in init_fields:
            object.__setattr__(obj, name, value)
    return obj
