# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Element resolution: one request in, one ElementDescriptor out.

A request targets exactly one of three variants:

- ``SelectorQuery``: single-element CSS query, selector echoed verbatim
- ``TextQuery``: first element (document order) whose own normalized text
  contains the string, selector synthesized
- ``InteractivePick``: the user clicks the element (see picker.py)

Optional intents run on the resolved node in the order scroll then click,
before the descriptor is captured, so ``rect`` reflects the scrolled layout.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass

from playwright.async_api import ElementHandle, Page
from playwright.async_api import Error as PlaywrightError

from . import ElementDescriptor
from .connection import DEFAULT_RESOLVE_TIMEOUT_MS
from .errors import (
    ClickFailedError,
    NoSelectionError,
    OperationTimeoutError,
    SelectorNotFoundError,
    TextNotFoundError,
)
from .picker import DEFAULT_PICK_TIMEOUT_MS, OUTER_GRACE_MS, PickerState, outer_cap_ms, pick_element
from .stage_timer import StageTimer
from .selector import describe_element

logger = logging.getLogger(__name__)

CLICK_DELAY_MS = 20

_SCROLL_INTO_VIEW_JS = """(el) => el.scrollIntoView({ behavior: "instant", block: "center", inline: "center" })"""

# Plain DOM query: no Playwright selector engines, no shadow-root piercing.
_QUERY_SELECTOR_JS = "(selector) => document.querySelector(selector)"


# ---------------------------------------------------------------------------
# Request variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SelectorQuery:
    selector: str


@dataclass(frozen=True, slots=True)
class TextQuery:
    text: str


@dataclass(frozen=True, slots=True)
class InteractivePick:
    timeout_ms: int | None = None  # None = picker default, 0 = no in-page timer


Target = SelectorQuery | TextQuery | InteractivePick


@dataclass(frozen=True, slots=True)
class ResolveRequest:
    target: Target
    scroll: bool = False
    click: bool = False
    timeout_ms: int = DEFAULT_RESOLVE_TIMEOUT_MS  # bounds the click's actionability wait


def target_from_args(
    selector: str | None = None,
    text: str | None = None,
    pick_timeout_ms: int | None = None,
) -> Target:
    """Pick the variant from optional CLI-style arguments (selector wins over text)."""
    if selector:
        return SelectorQuery(selector)
    if text:
        return TextQuery(text)
    return InteractivePick(pick_timeout_ms)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def xpath_literal(value: str) -> str:
    """Quote *value* as an XPath 1.0 string literal.

    XPath has no escape sequences, so a value holding both quote kinds
    is split and rejoined with ``concat()``.
    """
    if '"' not in value:
        return f'"{value}"'
    if "'" not in value:
        return f"'{value}'"
    pieces = value.split('"')
    joined = ", '\"', ".join(f'"{piece}"' for piece in pieces)
    return f"concat({joined})"


def text_query_xpath(text: str) -> str:
    return f"//*[contains(normalize-space(text()), {xpath_literal(text)})]"


async def find_by_selector(page: Page, selector: str) -> ElementHandle | None:
    """First match of *selector* as ``document.querySelector`` sees it."""
    result = await page.evaluate_handle(_QUERY_SELECTOR_JS, selector)
    element = result.as_element()
    if element is None:
        await result.dispose()
    return element


async def find_by_text(page: Page, text: str) -> ElementHandle | None:
    """First match in document order; every other candidate handle is disposed."""
    handles = await page.query_selector_all(f"xpath={text_query_xpath(text)}")
    if not handles:
        return None
    first, *rest = handles
    if rest:
        logger.debug("Text query matched %d elements, keeping the first", len(handles))
        await asyncio.gather(*(handle.dispose() for handle in rest), return_exceptions=True)
    return first


async def _locate(page: Page, target: Target, timer: StageTimer) -> tuple[ElementHandle, str | None]:
    """Return the resolved handle plus a selector to echo (None = synthesize)."""
    match target:
        case SelectorQuery(selector=selector):
            timer.enter("resolve")
            handle = await find_by_selector(page, selector)
            if handle is None:
                raise SelectorNotFoundError(selector)
            return handle, selector
        case TextQuery(text=text):
            timer.enter("resolve")
            handle = await find_by_text(page, text)
            if handle is None:
                raise TextNotFoundError(text)
            return handle, None
        case InteractivePick(timeout_ms=timeout_ms):
            timer.enter("pick")
            outcome = await pick_element(page, timeout_ms)
            if not outcome.selected:
                if outcome.element is not None:
                    await outcome.element.dispose()
                reason = "timeout" if outcome.state is PickerState.TIMED_OUT else "cancelled"
                raise NoSelectionError(reason)
            return outcome.element, (outcome.summary or {}).get("selector")
        case _:
            raise TypeError(f"Unsupported resolution target: {target!r}")


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def deadline_ms(request: ResolveRequest) -> int:
    """Host-side safety net for one resolution, independent of any in-page timer."""
    budget = request.timeout_ms + OUTER_GRACE_MS
    if isinstance(request.target, InteractivePick):
        pick_timeout = request.target.timeout_ms
        if pick_timeout is None:
            pick_timeout = DEFAULT_PICK_TIMEOUT_MS
        budget += outer_cap_ms(max(pick_timeout, 0))
    if request.click:
        budget += request.timeout_ms
    return budget


async def resolve_element(
    page: Page,
    request: ResolveRequest,
    *,
    timer: StageTimer | None = None,
) -> ElementDescriptor:
    """Resolve *request* against *page*, apply intents, and capture a descriptor.

    Raises an ``ElementNotFoundError`` subclass when nothing resolves,
    ``ClickFailedError`` (carrying the descriptor) when the click fails, and
    ``OperationTimeoutError`` when the page stops answering.
    """
    timer = timer or StageTimer()
    budget = deadline_ms(request)
    try:
        async with asyncio.timeout(budget / 1000):
            descriptor = await _resolve(page, request, timer)
    except TimeoutError:
        report = timer.timeout_report()
        logger.warning("Element resolution timed out: %s", report)
        raise OperationTimeoutError(
            f"Element resolution timed out after {budget}ms",
            stage=report["timed_out_at"],
            report=report,
        ) from None
    finally:
        timer.close()

    logger.debug("Resolution stages: %s", timer.durations())
    return descriptor


async def _resolve(page: Page, request: ResolveRequest, timer: StageTimer) -> ElementDescriptor:
    handle, selector_hint = await _locate(page, request.target, timer)
    try:
        if request.scroll:
            timer.enter("scroll")
            await handle.evaluate(_SCROLL_INTO_VIEW_JS)
            logger.info("Element scrolled into view")

        if request.click:
            timer.enter("click")
            try:
                await handle.click(delay=CLICK_DELAY_MS, timeout=request.timeout_ms)
            except PlaywrightError as exc:
                descriptor = None
                with suppress(PlaywrightError):
                    descriptor = await describe_element(handle, selector_hint)
                raise ClickFailedError(exc.message, descriptor=descriptor) from exc
            logger.info("Element clicked")

        timer.enter("describe")
        descriptor = await describe_element(handle, selector_hint)
    finally:
        with suppress(PlaywrightError):
            await handle.dispose()
    return descriptor
