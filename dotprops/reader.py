"""
dotprops Reader - Line parser for grouped properties files.

Parsing rules:
  - Raw lines starting with '#' are comments
  - Blank lines are skipped
  - A line without '=' opens a group
  - A line with '=' inside a group is an entry; before any group it is dropped
"""

from __future__ import annotations

import logging
from pathlib import Path

from dotprops.grammar import (
    ASSIGN, COMMENT_PREFIX, MAX_FILE_SIZE, QUOTE, join_key,
)

logger = logging.getLogger(__name__)


class PropertiesReader:
    """
    Reads a grouped properties file into a flat, ordered dict.

    Usage:
        properties = PropertiesReader.read("server.properties")
        properties["test.message.third"]
    """

    @classmethod
    def read(cls, path: str | Path, max_size: int = MAX_FILE_SIZE) -> dict[str, str]:
        """Parse a properties file. OSError and UnicodeDecodeError propagate."""
        path = Path(path)
        file_size = path.stat().st_size
        if file_size > max_size:
            raise ValueError(
                f"File size {file_size} exceeds maximum {max_size} bytes. "
                f"Pass max_size= to override."
            )
        data = path.read_bytes()
        return cls.parse(data.decode("utf-8"))

    @classmethod
    def parse(cls, text: str) -> dict[str, str]:
        """Parse properties text into a flat dict, preserving file order."""
        # Normalize CRLF/CR to LF to handle Windows line endings
        text = text.replace("\r\n", "\n").replace("\r", "\n")

        properties: dict[str, str] = {}
        current_group: str | None = None
        dropped = 0

        for raw in text.split("\n"):
            # Comments are only recognised in column 0
            if raw.startswith(COMMENT_PREFIX):
                continue

            line = raw.strip()
            if not line:
                continue

            if ASSIGN not in line:
                current_group = line
                continue

            if current_group is None:
                dropped += 1
                continue

            subkey, value = line.split(ASSIGN, 1)
            key = join_key(current_group, subkey.strip())
            properties[key] = value.strip().replace(QUOTE, "")

        if dropped:
            logger.debug("Dropped %d entries outside of any group", dropped)
        return properties
