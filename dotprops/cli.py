"""
dotprops CLI - Command-line interface for grouped properties files.

Commands:
  dotprops show     - Show groups and entries of a properties file
  dotprops keys     - List every stored key
  dotprops get      - Read one key (optionally as a typed scalar)
  dotprops set      - Store a value (first write wins)
  dotprops default  - Read a key, storing a default first if missing
  dotprops view     - Browse the file in a terminal UI

The file is taken from --file, then $DOTPROPS_FILE, then config.properties.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

DEFAULT_FILE = "config.properties"

_GETTERS = {
    "string": "get_string",
    "int": "get_int",
    "long": "get_long",
    "double": "get_double",
    "boolean": "get_boolean",
    "char": "get_char",
}


def _open(args: argparse.Namespace):
    from dotprops.store import DotProperties
    return DotProperties(args.file)


def cmd_show(args: argparse.Namespace) -> None:
    """Show a properties file grouped by section."""
    from dotprops.writer import PropertiesWriter

    props = _open(args)
    if not props.exists():
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        sys.exit(1)

    grouped = PropertiesWriter.group(props.as_dict())
    print(f"FILE: {props.path}")
    print(f"  {len(grouped)} groups, {len(props)} entries")
    print()
    for group, entries in grouped.items():
        print(f"[{group}]")
        for subkey, value in entries.items():
            # Truncate long values (binary fallback text can be large)
            display = value if len(value) <= 72 else value[:69] + "..."
            print(f"  {subkey:20s} {display}")
        print()


def cmd_keys(args: argparse.Namespace) -> None:
    """List all keys, one per line."""
    for key in _open(args).keys():
        print(key)


def cmd_get(args: argparse.Namespace) -> None:
    """Read a single key."""
    props = _open(args)
    value = getattr(props, _GETTERS[args.type])(args.key)
    if value is None:
        print(f"Key '{args.key}' not found or not a valid {args.type}.", file=sys.stderr)
        sys.exit(1)
    if isinstance(value, bool):
        value = "true" if value else "false"
    print(value)


def cmd_set(args: argparse.Namespace) -> None:
    """Store a value unless the key already exists."""
    props = _open(args)
    if args.key in props:
        print(f"Key '{args.key}' already exists with value: {props.get_string(args.key)}")
        return
    props.append_string(args.key, args.value)
    print(f"Stored {args.key} in {props.path}")


def cmd_default(args: argparse.Namespace) -> None:
    """Print a key's value, creating it with the default if missing."""
    print(_open(args).get_or_create(args.key, args.value))


def cmd_view(args: argparse.Namespace) -> None:
    """View a properties file in the terminal UI."""
    try:
        from dotprops.tui.viewer import run_viewer
    except ImportError:
        print(
            "TUI viewer requires the 'textual' package.\n"
            "Install it with: pip install \"dotprops[tui]\"",
            file=sys.stderr,
        )
        sys.exit(1)
    run_viewer(args.file)


def _configure_logging(verbose: bool) -> None:
    level_name = "DEBUG" if verbose else os.environ.get("DOTPROPS_LOG_LEVEL", "WARNING")
    level = getattr(logging, level_name.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def build_parser() -> argparse.ArgumentParser:
    from dotprops import __version__

    parser = argparse.ArgumentParser(
        prog="dotprops",
        description="dotprops - grouped dotted-key properties files",
    )
    parser.add_argument("--version", action="version", version=f"dotprops {__version__}")
    parser.add_argument(
        "-f", "--file",
        default=os.environ.get("DOTPROPS_FILE", DEFAULT_FILE),
        help=f"Properties file (default: $DOTPROPS_FILE or {DEFAULT_FILE})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("show", help="Show groups and entries")
    sub.add_parser("keys", help="List every key")

    p_get = sub.add_parser("get", help="Read a key")
    p_get.add_argument("key", help="Dotted key, e.g. server.net.port")
    p_get.add_argument("-t", "--type", choices=sorted(_GETTERS), default="string",
                       help="Parse the value as this scalar type (default: string)")

    p_set = sub.add_parser("set", help="Store a value (existing keys are kept)")
    p_set.add_argument("key", help="Dotted key with at least three segments")
    p_set.add_argument("value", help="Value to store")

    p_default = sub.add_parser("default", help="Read a key, creating it if missing")
    p_default.add_argument("key", help="Dotted key with at least three segments")
    p_default.add_argument("value", help="Value stored when the key is missing")

    sub.add_parser("view", help="Browse the file in a terminal UI")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    commands = {
        "show": cmd_show,
        "keys": cmd_keys,
        "get": cmd_get,
        "set": cmd_set,
        "default": cmd_default,
        "view": cmd_view,
    }

    from dotprops.errors import PropertiesError

    try:
        commands[args.command](args)
    except PropertiesError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
