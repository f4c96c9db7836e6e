#!/usr/bin/env python3
"""Command-line interface for cssvars."""

from __future__ import annotations

import argparse
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import NoReturn

from .document import TextDocument
from .manager import CssVariableManager
from .selector import SelectorError, parse_selector

_EXTENSION_LANGUAGES = {
    ".css": "css",
    ".scss": "scss",
    ".sass": "sass",
    ".less": "less",
    ".html": "html",
    ".htm": "html",
    ".xhtml": "html",
    ".vue": "vue",
    ".svelte": "svelte",
    ".php": "php",
}


def _get_version() -> str:
    try:
        return version("cssvars")
    except PackageNotFoundError:  # pragma: no cover
        return "dev"


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="cssvars",
        description="List CSS custom property definitions and usages in CSS and HTML files.",
        epilog=(
            "Examples:\n"
            "  cssvars styles.css\n"
            "  cssvars index.html theme.css --name=--main-color --references\n"
            "  cat page.html | cssvars - --language html\n"
            "  cssvars page.html --selector 'div > p'\n"
            "\n"
            "If you don't have the 'cssvars' command available, use:\n"
            "  python -m cssvars ...\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "paths",
        nargs="*",
        metavar="PATH",
        help="CSS or HTML file to index, or '-' to read from stdin",
    )
    parser.add_argument(
        "--name",
        help="Only report this variable (e.g. --name=--main-color)",
    )
    parser.add_argument(
        "--references",
        action="store_true",
        help="Also report var() usages",
    )
    parser.add_argument(
        "--selector",
        help="Print the elements of the first markup input that match this CSS selector",
    )
    parser.add_argument(
        "--language",
        help="Language id for every input (default: guessed from the file extension)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log parsing details to stderr",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"cssvars {_get_version()}",
    )

    args = parser.parse_args(argv)

    if not args.paths:
        parser.print_help(sys.stderr)
        raise SystemExit(1)

    return args


def _read_document(path: str, language: str | None) -> TextDocument:
    if path == "-":
        return TextDocument("stdin", language or "css", 0, sys.stdin.read())

    file_path = Path(path)
    language_id = language or _EXTENSION_LANGUAGES.get(file_path.suffix.lower(), "css")
    return TextDocument(file_path.resolve().as_uri(), language_id, 0, file_path.read_text(encoding="utf-8"))


def _format_location(uri: str, line: int, character: int) -> str:
    return f"{uri}:{line + 1}:{character + 1}"


def main() -> NoReturn | None:
    args = _parse_args(sys.argv[1:])
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    manager = CssVariableManager()
    documents = [_read_document(path, args.language) for path in args.paths]
    for document in documents:
        manager.parse_document(document)

    if args.selector:
        try:
            parse_selector(args.selector)
        except SelectorError as e:
            print(str(e), file=sys.stderr)
            raise SystemExit(2) from e

        trees = [manager.get_dom_tree(d.uri) for d in documents]
        tree = next((t for t in trees if t is not None), None)
        nodes = tree.query_selector_all(args.selector) if tree is not None else []
        if not nodes:
            raise SystemExit(1)
        for info in nodes:
            label = info.tag_name
            if info.id:
                label += f"#{info.id}"
            label += "".join(f".{name}" for name in info.classes)
            sys.stdout.write(label + "\n")
        return None

    if args.name:
        definitions = manager.get_variables(args.name)
        usages = manager.get_variable_usages(args.name)
    else:
        definitions = manager.get_all_variables()
        usages = [u for d in documents for u in manager.get_document_usages(d.uri)]

    lines = []
    for definition in definitions:
        start = definition.range.start
        value = definition.value + (" !important" if definition.important else "")
        lines.append(
            f"{_format_location(definition.uri, start.line, start.character)} "
            f"{definition.name} {value} {definition.selector}"
        )
    if args.references:
        for usage in usages:
            start = usage.range.start
            lines.append(
                f"{_format_location(usage.uri, start.line, start.character)} {usage.name} var() {usage.usage_context}"
            )

    if not lines:
        raise SystemExit(1)

    sys.stdout.write("\n".join(lines))
    sys.stdout.write("\n")
    return None


if __name__ == "__main__":
    main()
