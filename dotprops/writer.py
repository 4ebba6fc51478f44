"""
dotprops Writer - Serializes a flat store into grouped properties text.

Two passes:
  1. Bucket every key under its group (first-seen group order)
  2. Emit header, indented entries and a blank separator per group
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path

from dotprops.grammar import check_value, format_entry, join_key, split_key

logger = logging.getLogger(__name__)


class PropertiesWriter:

    @staticmethod
    def group(properties: Mapping[str, str]) -> dict[str, dict[str, str]]:
        """Bucket entries by group. Raises MalformedKeyError for short keys."""
        grouped: dict[str, dict[str, str]] = {}
        for key, value in properties.items():
            group, subkey = split_key(key)
            grouped.setdefault(group, {})[subkey] = value
        return grouped

    @staticmethod
    def serialize(properties: Mapping[str, str]) -> str:
        """Serialize entries to text. Pure - does not touch the input mapping.

        Raises MalformedKeyError for ungroupable keys and MalformedValueError
        for values with line breaks.
        """
        lines: list[str] = []
        for group, entries in PropertiesWriter.group(properties).items():
            lines.append(group)
            for subkey, value in entries.items():
                check_value(value, join_key(group, subkey))
                lines.append(format_entry(subkey, value))
            lines.append("")  # blank line closes the group
        return "".join(line + "\n" for line in lines)

    @staticmethod
    def write(properties: Mapping[str, str], path: str | Path, mode: int = 0o644) -> int:
        """Write entries to a file atomically. Returns bytes written.

        Serializes first, so a malformed key leaves the existing file alone.
        The temp file lives next to the target and is renamed over it, so
        readers never observe a partially written file.
        """
        data = PropertiesWriter.serialize(properties).encode("utf-8")
        dir_name = os.path.dirname(os.path.abspath(path)) or "."
        fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix=".properties.tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, mode)
            os.replace(tmp_path, path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.debug("Wrote %d entries (%d bytes) to %s", len(properties), len(data), path)
        return len(data)
