"""
dotprops - Grouped dotted-key properties files with typed values.

Human Readability > Simplicity > Speed
"""

__version__ = "0.1.0"

from dotprops.coercion import Kind
from dotprops.errors import (
    DecodeError,
    MalformedKeyError,
    MalformedValueError,
    PropertiesError,
    PropertiesIOError,
    SerializationError,
    UnconstructibleTypeError,
    UnsupportedTypeError,
)
from dotprops.mapper import ObjectMapper, member
from dotprops.reader import PropertiesReader
from dotprops.store import DotProperties, Lookup, LookupStatus
from dotprops.translators import (
    Endpoint,
    FunctionTranslator,
    Translator,
    TranslatorRegistry,
)
from dotprops.writer import PropertiesWriter
