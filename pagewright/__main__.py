"""Pagewright CLI entry point.

Allows running via `python -m pagewright` and provides the console script
defined in `pyproject.toml`.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from .version import get_version_string

USAGE = "usage: pagewright [--verbose] FILE.html | --version"


def main(argv: Optional[list[str]] = None) -> int:
    # Very small arg parsing: version, verbosity and one document
    args = list(sys.argv[1:] if argv is None else argv)
    if args and args[0] in ("--version", "-V"):
        print(get_version_string())
        return 0
    if args and args[0] in ("--verbose", "-v"):
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
        args = args[1:]
    if len(args) != 1:
        print(USAGE, file=sys.stderr)
        return 2

    # Lazy import to keep --version free of reportlab
    from .editor import Editor

    editor = Editor()
    if not editor.load_file(args[0]):
        print(f"Error: cannot read {args[0]}", file=sys.stderr)
        return 1
    if editor.load_preferences():
        editor.refresh()

    pages = editor.page_count
    print(f"{args[0]}: {pages} page{'s' if pages != 1 else ''}, "
          f"{editor.word_count} words, {editor.character_count} characters")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
