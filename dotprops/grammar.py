"""
dotprops File Format
====================

Layout:
    # comment                     <- Raw line starting with '#', ignored
    <group>                       <- Group header: any line without '='
        <subkey> = "<value>"      <- Entry, stored as <group>.<subkey>
        <subkey> = "<value>"
                                  <- One blank line closes every group

Example:
    test.message
        third = "3"

    test.object
        name = "test"
        age = "1"

Keys:
    - Dotted: the first two segments form the group, the rest is the sub-key
    - "test.object.name" -> group "test.object", sub-key "name"
    - "test.uuid.id.most" -> group "test.uuid", sub-key "id.most"
    - Keys with fewer than three segments cannot be grouped and are rejected
    - A key cannot start with '#', its group header would read back as a comment

Values:
    - Everything right of the first '=' is the value, trimmed
    - Double quotes are dropped on read, so values cannot contain them
    - Line breaks are rejected on write (no header injection); every other
      character, tabs and control characters included, is kept as is
"""

from __future__ import annotations

from dotprops.errors import MalformedKeyError, MalformedValueError

COMMENT_PREFIX = "#"
ASSIGN = "="
QUOTE = '"'
KEY_SEPARATOR = "."
INDENT = "    "

# group = first GROUP_DEPTH segments; a key needs at least one more
GROUP_DEPTH = 2
MIN_KEY_SEGMENTS = GROUP_DEPTH + 1

# Safety limits
MAX_FILE_SIZE = 16 * 1024 * 1024  # 16MB max properties file for reader

EXTENSION = ".properties"

LINE_BREAKS = frozenset({"\n", "\r"})
_FORBIDDEN_KEY_CHARS = frozenset({ASSIGN, QUOTE}) | LINE_BREAKS


def check_key(key: str) -> str:
    """Reject keys the file format cannot represent. Returns the key."""
    if not key:
        raise MalformedKeyError("Key cannot be empty", key)
    bad = sorted(c for c in _FORBIDDEN_KEY_CHARS if c in key)
    if bad:
        raise MalformedKeyError(f"Key contains forbidden characters {bad!r}", key)
    group, subkey = split_key(key)
    # the reader trims both sides of every header and sub-key
    if group != group.strip() or subkey != subkey.strip():
        raise MalformedKeyError("Key has leading or trailing whitespace", key)
    return key


def split_key(key: str) -> tuple[str, str]:
    """Split a full key into (group, sub-key).

    The sub-key keeps every segment after the group so deeper keys
    survive a save/load cycle.
    """
    parts = key.split(KEY_SEPARATOR, GROUP_DEPTH)
    if len(parts) < MIN_KEY_SEGMENTS or not all(p.strip() for p in parts):
        raise MalformedKeyError(
            f"Key needs at least {MIN_KEY_SEGMENTS} non-empty dotted segments",
            key,
        )
    if parts[0].startswith(COMMENT_PREFIX):
        raise MalformedKeyError(
            f"Key cannot start with {COMMENT_PREFIX!r}, its group would read back as a comment",
            key,
        )
    group = KEY_SEPARATOR.join(parts[:GROUP_DEPTH])
    return group, parts[GROUP_DEPTH]


def join_key(*segments: str) -> str:
    """Join key segments with the separator."""
    return KEY_SEPARATOR.join(segments)


def check_value(value: str, key: str = "") -> str:
    """Reject values that would split their entry line. Returns the value."""
    if any(c in value for c in LINE_BREAKS):
        raise MalformedValueError("Value cannot contain line breaks", key)
    return value


def format_entry(subkey: str, value: str) -> str:
    return f"{INDENT}{subkey} {ASSIGN} {QUOTE}{value}{QUOTE}"
