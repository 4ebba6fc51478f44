"""
dotprops Translators - Per-type codecs that bypass member-wise mapping.

A translator owns everything stored under its key prefix. Lookup is by
exact runtime type: a subclass of a registered type is NOT handled by the
parent's translator.

Built-ins:
    uuid.UUID -> <key>.most, <key>.least   (signed 64-bit halves)
    Endpoint  -> <key>.host, <key>.port
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar

from dotprops.errors import DecodeError
from dotprops.grammar import join_key

if TYPE_CHECKING:
    from dotprops.store import DotProperties

logger = logging.getLogger(__name__)

T = TypeVar("T")

_U64 = 1 << 64
_U64_MASK = _U64 - 1


class Translator(ABC, Generic[T]):
    """Serialize/deserialize pair for one value type."""

    @abstractmethod
    def deserialize(self, key: str, store: DotProperties) -> T:
        """Rebuild a value from the entries under ``key``."""

    @abstractmethod
    def serialize(self, key: str, store: DotProperties, value: T) -> None:
        """Store ``value`` as entries under ``key``."""


class FunctionTranslator(Translator[T]):
    """Translator built from two plain callables."""

    def __init__(
        self,
        serialize: Callable[[str, DotProperties, T], None],
        deserialize: Callable[[str, DotProperties], T],
    ) -> None:
        self._serialize = serialize
        self._deserialize = deserialize

    def deserialize(self, key: str, store: DotProperties) -> T:
        return self._deserialize(key, store)

    def serialize(self, key: str, store: DotProperties, value: T) -> None:
        self._serialize(key, store, value)


class TranslatorRegistry:
    """Exact-type -> translator bindings. Last registration wins."""

    def __init__(self, defaults: bool = True) -> None:
        self._translators: dict[type, Translator[Any]] = {}
        if defaults:
            self.register(uuid.UUID, UUIDTranslator())
            self.register(Endpoint, EndpointTranslator())

    def register(self, tp: type[T], translator: Translator[T]) -> None:
        if not isinstance(tp, type):
            raise TypeError(f"Translators are registered per type, got {tp!r}")
        if tp in self._translators:
            logger.debug("Replacing translator for %s", tp.__qualname__)
        self._translators[tp] = translator

    def lookup(self, tp: type) -> Translator[Any] | None:
        return self._translators.get(tp)

    def __contains__(self, tp: object) -> bool:
        return tp in self._translators

    def __len__(self) -> int:
        return len(self._translators)


# =============================================================================
# UUID
# =============================================================================

def _signed64(value: int) -> int:
    return value - _U64 if value >= 1 << 63 else value


class UUIDTranslator(Translator[uuid.UUID]):

    def deserialize(self, key: str, store: DotProperties) -> uuid.UUID:
        most = store.get_long(join_key(key, "most"))
        least = store.get_long(join_key(key, "least"))
        if most is None or least is None:
            raise DecodeError(f"UUID under {key!r} needs readable 'most' and 'least' entries")
        return uuid.UUID(int=((most & _U64_MASK) << 64) | (least & _U64_MASK))

    def serialize(self, key: str, store: DotProperties, value: uuid.UUID) -> None:
        store.append_long(join_key(key, "most"), _signed64(value.int >> 64))
        store.append_long(join_key(key, "least"), _signed64(value.int & _U64_MASK))


# =============================================================================
# Network endpoint
# =============================================================================

@dataclass(frozen=True)
class Endpoint:
    """A host and port pair. ``host`` may be None for wildcard endpoints."""

    host: str | None
    port: int

    def __post_init__(self) -> None:
        if not 0 <= self.port <= 0xFFFF:
            raise ValueError(f"Port out of range: {self.port}")

    def __str__(self) -> str:
        return f"{self.host or '*'}:{self.port}"


class EndpointTranslator(Translator[Endpoint]):

    def deserialize(self, key: str, store: DotProperties) -> Endpoint:
        host = store.get_string(join_key(key, "host"))
        port = store.get_int(join_key(key, "port"))
        if port is None:
            raise DecodeError(f"Endpoint under {key!r} has no readable 'port' entry")
        try:
            return Endpoint(host, port)
        except ValueError as e:
            raise DecodeError(str(e)) from e

    def serialize(self, key: str, store: DotProperties, value: Endpoint) -> None:
        if value.host is not None:
            store.append_string(join_key(key, "host"), value.host)
        store.append_int(join_key(key, "port"), value.port)
