# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""PagePick CLI: element, eval, pages commands.

Usage:
    pagepick element [SELECTOR] [--text TEXT] [--click] [--scroll] [--pick-timeout MS]
    pagepick eval [EXPRESSION ...] [--file PATH] [--truncate N]
    pagepick pages

Common options: --host HOST --port PORT --ws URL --timeout MS --page-index N --json --quiet --verbose
With neither SELECTOR nor --text, ``element`` arms the interactive picker:
click the element in the browser window.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from . import ElementDescriptor
from .browser_session import ACTIVE_PAGE, PageInfo, connect_session
from .connection import (
    DEFAULT_OPERATION_TIMEOUT_MS,
    DEFAULT_RESOLVE_TIMEOUT_MS,
    normalize_number,
    resolve_connection,
    settings_from_env,
)
from .errors import EvaluationError, NoActivePageError, OperationTimeoutError
from .evaluate import DEFAULT_TRUNCATE, evaluate_expression, truncate_result
from .logging_config import configure, level_for
from .picker import DEFAULT_PICK_TIMEOUT_MS
from .problem_details import from_exception
from .resolver import ResolveRequest, resolve_element, target_from_args
from .stage_timer import StageTimer

logger = logging.getLogger(__name__)


# ── Output helpers ───────────────────────────────────────────────────


def print_json(value: Any) -> None:
    sys.stdout.write(json.dumps(value, ensure_ascii=False) + "\n")


def format_human(descriptor: ElementDescriptor) -> str:
    """Line-oriented element description; empty optional fields are omitted."""
    lines = [f"selector: {descriptor.selector}"]
    if descriptor.tag:
        lines.append(f"tag: {descriptor.tag}")
    if descriptor.id:
        lines.append(f"id: {descriptor.id}")
    if descriptor.classes:
        lines.append(f"classes: {' '.join(descriptor.classes)}")
    if descriptor.text:
        lines.append(f"text: {descriptor.text}")
    lines.append(f"visible: {'true' if descriptor.visible else 'false'}")
    lines.append(f"children: {descriptor.children}")
    rect = descriptor.rect
    lines.append(f"position: ({rect.x}, {rect.y})")
    lines.append(f"size: {rect.width}x{rect.height}")
    return "\n".join(lines) + "\n"


def format_pages(pages: list[PageInfo]) -> str:
    lines = []
    for info in pages:
        marker = "*" if info.active else " "
        title = info.title or "(untitled)"
        lines.append(f"{marker} [{info.index}] {title}  {info.url}")
    return "\n".join(lines) + "\n" if lines else ""


def _connection(args: argparse.Namespace):
    return resolve_connection(settings_from_env(endpoint=args.ws, host=args.host, port=args.port))


def _page_index(args: argparse.Namespace) -> int:
    return normalize_number(args.page_index, ACTIVE_PAGE)


# ── element ──────────────────────────────────────────────────────────


async def _run_element(args: argparse.Namespace) -> ElementDescriptor:
    timeout_ms = normalize_number(args.timeout, DEFAULT_RESOLVE_TIMEOUT_MS)
    pick_timeout = None if args.pick_timeout is None else normalize_number(args.pick_timeout, DEFAULT_PICK_TIMEOUT_MS)
    request = ResolveRequest(
        target=target_from_args(args.selector, args.text, pick_timeout),
        scroll=args.scroll,
        click=args.click,
        timeout_ms=timeout_ms,
    )

    timer = StageTimer()
    timer.enter("connect")
    async with connect_session(_connection(args), timeout_ms=timeout_ms) as session:
        timer.enter("page")
        page = session.active_page(_page_index(args))
        if page is None:
            raise NoActivePageError()
        return await resolve_element(page, request, timer=timer)


def cmd_element(args: argparse.Namespace) -> None:
    """Resolve one element and print its descriptor."""
    descriptor = asyncio.run(_run_element(args))
    if args.json:
        print_json({"ok": True, **descriptor.to_dict()})
    else:
        logger.info("Element %s", descriptor.selector)
        sys.stdout.write(format_human(descriptor))


# ── eval ─────────────────────────────────────────────────────────────


def _read_expression(args: argparse.Namespace) -> str | None:
    if args.file:
        return Path(args.file).read_text(encoding="utf-8").strip()
    if args.expression:
        return " ".join(args.expression)
    if not sys.stdin.isatty():
        return sys.stdin.read().strip()
    return None


async def _run_eval(args: argparse.Namespace, expression: str) -> Any:
    timeout_ms = normalize_number(args.timeout, DEFAULT_OPERATION_TIMEOUT_MS)
    async with connect_session(_connection(args), timeout_ms=timeout_ms) as session:
        page = session.active_page(_page_index(args))
        if page is None:
            raise NoActivePageError("No active page found. Navigate to a page first.")
        try:
            async with asyncio.timeout(timeout_ms / 1000):
                return await evaluate_expression(page, expression)
        except TimeoutError:
            raise OperationTimeoutError(f"Evaluation timed out after {timeout_ms}ms", stage="evaluate") from None


def cmd_eval(args: argparse.Namespace) -> None:
    """Evaluate a JavaScript expression in the active page."""
    expression = _read_expression(args)
    if not expression:
        raise EvaluationError("No JavaScript provided. Pass an expression or use --file/STDIN.")
    result = asyncio.run(_run_eval(args, expression))
    if args.json:
        print_json({"ok": True, "result": result})
    else:
        limit = normalize_number(args.truncate, DEFAULT_TRUNCATE)
        sys.stdout.write(truncate_result(result, limit) + "\n")


# ── pages ────────────────────────────────────────────────────────────


async def _run_pages(args: argparse.Namespace) -> list[PageInfo]:
    timeout_ms = normalize_number(args.timeout, DEFAULT_OPERATION_TIMEOUT_MS)
    async with connect_session(_connection(args), timeout_ms=timeout_ms) as session:
        return await session.list_pages(_page_index(args))


def cmd_pages(args: argparse.Namespace) -> None:
    """List open pages, marking the one commands target."""
    pages = asyncio.run(_run_pages(args))
    if args.json:
        print_json({"ok": True, "pages": [p.to_dict() for p in pages]})
    else:
        sys.stdout.write(format_pages(pages))


# ── Parser / entry point ─────────────────────────────────────────────

_FALLBACK_PREFIX = {
    "element": "Element lookup failed",
    "eval": "Evaluation failed",
    "pages": "Page listing failed",
}


def _common_options() -> argparse.ArgumentParser:
    # Numbers are parsed leniently later (bad values fall back to defaults).
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--host", type=str, default=None, help="Debugging host (default: localhost)")
    common.add_argument("--port", type=str, default=None, help="Debugging port (default: 9222)")
    common.add_argument("--ws", type=str, default=None, help="Endpoint URL; overrides host/port and BROWSER_WS_URL")
    common.add_argument("--timeout", type=str, default=None, metavar="MS", help="Operation timeout in ms")
    common.add_argument("--page-index", type=str, default=None, metavar="N", help="Target page (default: most recent)")
    common.add_argument("-j", "--json", action="store_true", help="JSON output on stdout")
    common.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return common


def build_parser() -> argparse.ArgumentParser:
    common = _common_options()
    parser = argparse.ArgumentParser(
        prog="pagepick",
        description="Resolve DOM elements in a running browser over the remote debugging protocol",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_element = subparsers.add_parser(
        "element",
        parents=[common],
        help="Describe one element (selector, --text, or interactive pick)",
        description="With no SELECTOR and no --text, click the element in the browser to pick it.",
    )
    p_element.add_argument("selector", nargs="?", default=None, help="CSS selector")
    p_element.add_argument("--text", type=str, default=None, help="Find the first element containing TEXT")
    p_element.add_argument("--click", action="store_true", help="Click the element after resolving it")
    p_element.add_argument("--scroll", action="store_true", help="Scroll the element into view first")
    p_element.add_argument(
        "--pick-timeout",
        type=str,
        default=None,
        metavar="MS",
        help="Interactive pick timeout in ms (default: 60000, 0 disables the in-page timer)",
    )
    p_element.set_defaults(func=cmd_element)

    p_eval = subparsers.add_parser("eval", parents=[common], help="Evaluate JavaScript in the active page")
    p_eval.add_argument("expression", nargs="*", help="Expression (joined with spaces)")
    p_eval.add_argument("--file", type=str, default=None, help="Read the expression from a file")
    p_eval.add_argument("--truncate", type=str, default=None, metavar="N", help="Max output chars (default: 8000)")
    p_eval.set_defaults(func=cmd_eval)

    p_pages = subparsers.add_parser("pages", parents=[common], help="List open pages")
    p_pages.set_defaults(func=cmd_pages)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure(json_output=args.json, level=level_for(quiet=args.quiet or args.json, verbose=args.verbose))

    try:
        args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except SystemExit:
        raise
    except Exception as e:
        problem = from_exception(e, fallback_prefix=_FALLBACK_PREFIX.get(args.command, "Command failed"))
        logger.debug("Command %s failed (%s)", args.command, problem.type, exc_info=True)
        if args.json:
            print_json(problem.to_json())
        else:
            print(problem.to_cli_text(), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
