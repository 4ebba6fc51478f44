"""Exception types raised by dotprops."""

from __future__ import annotations


class PropertiesError(Exception):
    """Base class for every dotprops failure."""


class PropertiesIOError(PropertiesError):
    """The backing file could not be read or written."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class MalformedKeyError(PropertiesError, ValueError):
    """A key cannot be mapped onto a group and sub-key."""

    def __init__(self, message: str, key: str = "") -> None:
        super().__init__(f"{message}: {key!r}")
        self.key = key


class UnconstructibleTypeError(PropertiesError, TypeError):
    """A target type cannot be built from stored members."""


class UnsupportedTypeError(PropertiesError, TypeError):
    """A value has no structural, registered or binary encoding."""


class DecodeError(PropertiesError, ValueError):
    """Stored text cannot be turned back into a value."""


class SerializationError(PropertiesError):
    """Wraps an unexpected failure while storing a typed value."""


class MalformedValueError(PropertiesError, ValueError):
    """A value cannot be written on a single entry line."""

    def __init__(self, message: str, key: str = "") -> None:
        super().__init__(f"{message}: {key!r}")
        self.key = key
