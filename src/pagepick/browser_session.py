# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Playwright CDP session management for PagePick.

Attaches to an already-running Chromium over its remote debugging endpoint,
enumerates open pages, and disconnects without closing the browser.
Launching the browser is someone else's job; this module only connects.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass

from playwright.async_api import Browser, Page, Playwright, async_playwright

from .connection import DEFAULT_OPERATION_TIMEOUT_MS, ConnectionDescriptor
from .errors import BrowserConnectionError

logger = logging.getLogger(__name__)

# Sentinel index meaning "the most recently opened page".
ACTIVE_PAGE = -1


@dataclass(frozen=True, slots=True)
class PageInfo:
    """One row of the open-page listing."""

    index: int
    url: str
    title: str
    active: bool

    def to_dict(self) -> dict:
        return {"index": self.index, "url": self.url, "title": self.title, "active": self.active}


def open_pages(browser: Browser) -> list[Page]:
    """All open pages across every context, in enumeration order."""
    pages: list[Page] = []
    for context in browser.contexts:
        pages.extend(page for page in context.pages if not page.is_closed())
    return pages


def get_active_page(browser: Browser, index: int = ACTIVE_PAGE) -> Page | None:
    """Return the page at *index*, or the last one for ``ACTIVE_PAGE``.

    Returns None when no page exists or *index* is out of range; the caller
    decides whether that is fatal. Never opens a new page.
    """
    pages = open_pages(browser)
    if not pages:
        return None
    if index == ACTIVE_PAGE:
        return pages[-1]
    if 0 <= index < len(pages):
        return pages[index]
    return None


class BrowserSession:
    """A borrowed connection to a running browser.

    Pages obtained from the session are never closed by it; ``stop()`` only
    tears down the transport.
    """

    def __init__(
        self,
        connection: ConnectionDescriptor,
        *,
        timeout_ms: int = DEFAULT_OPERATION_TIMEOUT_MS,
    ) -> None:
        self.connection = connection
        self.timeout_ms = timeout_ms
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    @property
    def browser(self) -> Browser:
        if self._browser is None:
            raise RuntimeError("Browser session not connected. Use async with or call start().")
        return self._browser

    @property
    def page_count(self) -> int:
        if self._browser is None:
            return 0
        return len(open_pages(self._browser))

    async def start(self) -> None:
        """Connect to the debugging endpoint."""
        address = self.connection.address
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.connect_over_cdp(address, timeout=self.timeout_ms)
        except Exception as exc:
            await self.stop()
            raise BrowserConnectionError(f"Failed to connect to browser: {exc}", address=address) from exc
        logger.info("Connected to browser at %s (%d pages)", address, self.page_count)

    async def stop(self) -> None:
        """Disconnect. Safe to call twice or after a failed start."""
        self._browser = None
        if self._playwright:
            with suppress(Exception):
                await self._playwright.stop()
            self._playwright = None
            logger.debug("Disconnected from %s", self.connection.address)

    async def __aenter__(self) -> BrowserSession:
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.stop()

    def active_page(self, index: int = ACTIVE_PAGE) -> Page | None:
        return get_active_page(self.browser, index)

    async def list_pages(self, active_index: int = ACTIVE_PAGE) -> list[PageInfo]:
        """Describe every open page, flagging the one commands would target."""
        pages = open_pages(self.browser)
        target = len(pages) - 1 if active_index == ACTIVE_PAGE else active_index
        infos: list[PageInfo] = []
        for i, page in enumerate(pages):
            title = ""
            with suppress(Exception):
                title = await page.title()
            infos.append(PageInfo(index=i, url=page.url, title=title, active=i == target))
        return infos


@asynccontextmanager
async def connect_session(
    connection: ConnectionDescriptor,
    *,
    timeout_ms: int = DEFAULT_OPERATION_TIMEOUT_MS,
) -> AsyncGenerator[BrowserSession, None]:
    """Context manager that always disconnects, on success or failure."""
    session = BrowserSession(connection, timeout_ms=timeout_ms)
    await session.start()
    try:
        yield session
    finally:
        await session.stop()
