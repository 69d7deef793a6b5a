# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""PagePick exception hierarchy.

All PagePick-specific errors inherit from PagePickError, allowing callers
to catch the base class for any failure or specific subclasses for
targeted handling. Every error is terminal for a single invocation;
nothing here is retried internally.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from . import ElementDescriptor


class PagePickError(Exception):
    """Base exception for all PagePick errors."""


class BrowserConnectionError(PagePickError):
    """Could not reach the browser debugging endpoint."""

    def __init__(self, message: str, *, address: str = "") -> None:
        super().__init__(message)
        self.address = address


class NoActivePageError(PagePickError):
    """Connected, but the browser has no open page."""

    def __init__(self, message: str = "No active page found. Navigate first.") -> None:
        super().__init__(message)


class ElementNotFoundError(PagePickError):
    """Element resolution produced no node."""


class SelectorNotFoundError(ElementNotFoundError):
    """Direct CSS query matched zero elements."""

    def __init__(self, selector: str) -> None:
        super().__init__(f"Selector not found: {selector}")
        self.selector = selector


class TextNotFoundError(ElementNotFoundError):
    """No element's text contains the query."""

    def __init__(self, text: str) -> None:
        super().__init__(f"No element found containing text: {text}")
        self.text = text


class NoSelectionError(ElementNotFoundError):
    """Interactive pick ended without a selection (timeout or cancel)."""

    def __init__(self, reason: str = "cancelled") -> None:
        super().__init__("No element selected.")
        self.reason = reason  # "timeout" | "cancelled"


class ClickFailedError(PagePickError):
    """Element was resolved, but clicking it failed."""

    def __init__(self, message: str, *, descriptor: ElementDescriptor | None = None) -> None:
        super().__init__(f"Click failed: {message}")
        self.descriptor = descriptor


class EvaluationError(PagePickError):
    """JavaScript evaluation in the page raised."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Evaluation failed: {message}")


class OperationTimeoutError(PagePickError):
    """The host-side safety-net timeout fired before the page answered."""

    def __init__(self, message: str, *, stage: str = "", report: dict | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.report = report or {}
