"""
dotprops Store - The persistence object around one properties file.

Usage:
    props = DotProperties("server.properties")
    props.get_or_create("server.net.port", "25565")
    props.append("server.owner.id", uuid.uuid4())
    props.get("server.owner.id", uuid.UUID)

Every append of a new key rewrites the whole file. Appends never
overwrite: the first value stored under a key is kept.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generic, Iterable, Iterator, TypeVar

from dotprops import coercion
from dotprops.coercion import Kind
from dotprops.errors import PropertiesError, PropertiesIOError, SerializationError
from dotprops.grammar import KEY_SEPARATOR, MAX_FILE_SIZE, check_key, check_value
from dotprops.mapper import ObjectMapper
from dotprops.reader import PropertiesReader
from dotprops.translators import Translator, TranslatorRegistry
from dotprops.writer import PropertiesWriter

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LookupStatus(enum.Enum):
    FOUND = "found"
    ABSENT = "absent"
    ERROR = "error"


@dataclass(frozen=True)
class Lookup(Generic[T]):
    """Outcome of a typed read that keeps absence and failure apart."""
    status: LookupStatus
    value: T | None = None
    error: Exception | None = None

    @property
    def found(self) -> bool:
        return self.status is LookupStatus.FOUND


class DotProperties:
    """Flat dotted-key store backed by a grouped properties file.

    binary_types limits which dataclasses the binary fallback may rebuild
    on read. Left as None, only dataclasses from already loaded modules
    are resolved.
    """

    def __init__(
        self,
        path: str | Path,
        registry: TranslatorRegistry | None = None,
        max_size: int = MAX_FILE_SIZE,
        binary_types: Iterable[type] | None = None,
    ) -> None:
        self.path = Path(path)
        self.max_size = max_size
        self._properties: dict[str, str] = {}
        self._mapper = ObjectMapper(registry, binary_types)
        if self.path.exists():
            self.load_properties()

    @property
    def registry(self) -> TranslatorRegistry:
        return self._mapper.registry

    def exists(self) -> bool:
        return self.path.exists()

    def register(self, tp: type[T], translator: Translator[T]) -> None:
        self._mapper.registry.register(tp, translator)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def load_properties(self) -> None:
        """Replace all entries with the file contents."""
        try:
            self._properties = PropertiesReader.read(self.path, max_size=self.max_size)
        except (OSError, ValueError) as e:
            # ValueError covers undecodable UTF-8 and the size guard
            raise PropertiesIOError(f"Cannot read {self.path}: {e}", str(self.path)) from e
        logger.debug("Loaded %d entries from %s", len(self._properties), self.path)

    def save_properties(self) -> None:
        """Rewrite the file from the current entries."""
        try:
            PropertiesWriter.write(self._properties, self.path)
        except OSError as e:
            raise PropertiesIOError(f"Cannot write {self.path}: {e}", str(self.path)) from e

    def _insert(self, key: str, value: str) -> None:
        self._properties[key] = value
        try:
            self.save_properties()
        except BaseException:
            del self._properties[key]
            raise

    # -------------------------------------------------------------------------
    # Scalar appends (first write wins)
    # -------------------------------------------------------------------------

    def append_string(self, key: str, value: str) -> None:
        check_key(key)
        if not isinstance(value, str):
            raise TypeError(f"append_string expects str, got {type(value).__qualname__}")
        check_value(value, key)
        if key in self._properties:
            logger.debug("Key %r already exists with value %r", key, self._properties[key])
            return
        self._insert(key, value)

    def append_int(self, key: str, value: int) -> None:
        self.append_string(key, coercion.to_text(Kind.INT, value))

    def append_long(self, key: str, value: int) -> None:
        self.append_string(key, coercion.to_text(Kind.LONG, value))

    def append_double(self, key: str, value: float) -> None:
        self.append_string(key, coercion.to_text(Kind.DOUBLE, value))

    def append_boolean(self, key: str, value: bool) -> None:
        self.append_string(key, coercion.to_text(Kind.BOOLEAN, value))

    def append_char(self, key: str, value: str) -> None:
        self.append_string(key, coercion.to_text(Kind.CHAR, value))

    def get_or_create(self, key: str, default: str) -> str:
        check_key(key)
        if not isinstance(default, str):
            raise TypeError(f"get_or_create expects a str default, got {type(default).__qualname__}")
        check_value(default, key)
        if key not in self._properties:
            self._insert(key, default)
        return self._properties[key]

    # -------------------------------------------------------------------------
    # Scalar reads (malformed values read as None)
    # -------------------------------------------------------------------------

    def get_string(self, key: str) -> str | None:
        return self._properties.get(key)

    def get_int(self, key: str) -> int | None:
        return coercion.parse_int(self.get_string(key))

    def get_long(self, key: str) -> int | None:
        return coercion.parse_long(self.get_string(key))

    def get_double(self, key: str) -> float | None:
        return coercion.parse_double(self.get_string(key))

    def get_boolean(self, key: str) -> bool | None:
        return coercion.parse_boolean(self.get_string(key))

    def get_char(self, key: str) -> str | None:
        return coercion.parse_char(self.get_string(key))

    # -------------------------------------------------------------------------
    # Typed values
    # -------------------------------------------------------------------------

    def append(self, key: str, value: Any) -> None:
        """Store a typed value under key via translator, members or binary fallback."""
        try:
            self._mapper.serialize(self, key, value)
        except PropertiesError:
            raise
        except Exception as e:
            raise SerializationError(
                f"Cannot store {type(value).__qualname__} under {key!r}: {e}"
            ) from e

    def lookup(self, key: str, tp: type[T]) -> Lookup[T]:
        """Read a typed value, reporting absence and failures separately."""
        if not self.has_entries(key):
            return Lookup(LookupStatus.ABSENT)
        try:
            value = self._mapper.deserialize(self, key, tp)
        except Exception as e:
            logger.debug("Cannot read %r as %r: %s", key, tp, e)
            return Lookup(LookupStatus.ERROR, error=e)
        return Lookup(LookupStatus.FOUND, value=value)

    def get(self, key: str, tp: type[T]) -> T | None:
        """Read a typed value. Missing, malformed and undecodable all give None."""
        return self.lookup(key, tp).value

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def has_entries(self, key: str) -> bool:
        """True if key itself or any key below it is stored."""
        if key in self._properties:
            return True
        prefix = key + KEY_SEPARATOR
        return any(k.startswith(prefix) for k in self._properties)

    def keys(self) -> list[str]:
        return list(self._properties)

    def as_dict(self) -> dict[str, str]:
        return dict(self._properties)

    def __contains__(self, key: object) -> bool:
        return key in self._properties

    def __len__(self) -> int:
        return len(self._properties)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._properties))

    def __repr__(self) -> str:
        return f"DotProperties(path={str(self.path)!r}, entries={len(self._properties)})"
