# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""PathPick CLI: describe, pattern, extract commands.

Usage:
    python -m pathpick.cli describe SOURCE --xpath XPATH
    python -m pathpick.cli pattern SOURCE --root XPATH --node XPATH
    python -m pathpick.cli extract SOURCE --selectors FILE [--url URL]

SOURCE is a local HTML file or an http(s) URL rendered with Playwright.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

from lxml import etree

from . import logging_config
from .browser import load_page
from .config import Settings
from .dom import Page, text_of
from .errors import PathPickError, ResolutionError
from .extractor import extract_record
from .matcher import find_matches, resolve_xpath
from .paths import describe, full_xpath, relative_path

logger = logging.getLogger("pathpick.cli")


def _print_json(payload: object) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _resolve(page: Page, xpath: str) -> etree._Element:
    node = resolve_xpath(page.document.getroottree(), xpath)
    if node is None:
        raise ResolutionError(f"No element matches {xpath}", path=xpath)
    return node


def cmd_describe(args: argparse.Namespace, settings: Settings) -> None:
    """Print the NodeDescriptor of the first element matching --xpath."""
    page = load_page(args.source, settings)
    _print_json(describe(_resolve(page, args.xpath)).to_payload())


def cmd_pattern(args: argparse.Namespace, settings: Settings) -> None:
    """Generalize --node against --root and list every match."""
    page = load_page(args.source, settings)
    root = _resolve(page, args.root)
    node = _resolve(page, args.node)
    pattern = relative_path(node, root)
    if not pattern:
        raise ResolutionError(f"{args.node} is not strictly inside {args.root}", path=args.node)
    matches = find_matches(pattern, root)
    _print_json(
        {
            "rootFullXPath": full_xpath(root),
            "relativeXPath": pattern,
            "matchingCount": len(matches),
            "matchingValues": [text_of(m).strip() for m in matches],
            "matchingPaths": [full_xpath(m) for m in matches],
        }
    )


def cmd_extract(args: argparse.Namespace, settings: Settings) -> None:
    """Replay a saved selector mapping against SOURCE."""
    path = Path(args.selectors)
    try:
        selectors = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise PathPickError(f"Cannot read {path}: {e.strerror or e}") from e
    except json.JSONDecodeError as e:
        raise PathPickError(f"{path} is not valid JSON: {e.msg} (line {e.lineno})") from e
    if not isinstance(selectors, dict):
        raise PathPickError(f"{path} must contain a JSON object of key -> selector")

    page = load_page(args.source, settings)
    record = extract_record(page, selectors, url=args.url or page.url, highlight=False, settings=settings)
    _print_json(record.to_dict())


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="PathPick CLI",
        prog="python -m pathpick.cli",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--json-logs", action="store_true", help="Emit structured JSON logs on stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_describe = subparsers.add_parser("describe", help="Describe the element at an XPath")
    p_describe.add_argument("source", metavar="SOURCE", help="HTML file or http(s) URL")
    p_describe.add_argument("--xpath", required=True, help="Full or specific XPath of the element")

    p_pattern = subparsers.add_parser("pattern", help="Generalize an element into a list pattern")
    p_pattern.add_argument("source", metavar="SOURCE", help="HTML file or http(s) URL")
    p_pattern.add_argument("--root", required=True, metavar="XPATH", help="List root element")
    p_pattern.add_argument("--node", required=True, metavar="XPATH", help="One item inside the root")

    p_extract = subparsers.add_parser("extract", help="Extract a record with saved selectors")
    p_extract.add_argument("source", metavar="SOURCE", help="HTML file or http(s) URL")
    p_extract.add_argument("--selectors", required=True, metavar="FILE", help="JSON object of key -> selector")
    p_extract.add_argument("--url", type=str, default="", help="URL recorded in the output (default: SOURCE)")
    return parser


_COMMANDS = {
    "describe": cmd_describe,
    "pattern": cmd_pattern,
    "extract": cmd_extract,
}


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = _build_parser().parse_args(argv)

    settings = Settings.from_env()
    if args.verbose:
        settings = dataclasses.replace(settings, log_level="DEBUG")
    if args.json_logs:
        settings = dataclasses.replace(settings, log_json=True)
    logging_config.configure(json_output=settings.log_json, level=settings.log_level)

    try:
        _COMMANDS[args.command](args, settings)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except PathPickError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            logger.exception("Unhandled failure in %s", args.command)
        sys.exit(1)


if __name__ == "__main__":
    main()
