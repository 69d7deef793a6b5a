# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Structured failure reports for PagePick commands.

Maps internal exceptions to a small error taxonomy and renders them in the
two output modes the CLI supports:

- ``ProblemType``: StrEnum error taxonomy (logged, not part of the JSON contract).
- ``ProblemDetail``: frozen dataclass (renders ``{"ok": false, "error": ...}`` / CLI text).
- ``from_exception()``: build a ``ProblemDetail`` from any exception.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .errors import (
    BrowserConnectionError,
    ClickFailedError,
    ElementNotFoundError,
    EvaluationError,
    NoActivePageError,
    NoSelectionError,
    OperationTimeoutError,
    PagePickError,
)

# ── ProblemType taxonomy ─────────────────────────────────────────────


class ProblemType(StrEnum):
    BROWSER_UNAVAILABLE = "browser-unavailable"
    NO_ACTIVE_PAGE = "no-active-page"
    ELEMENT_NOT_FOUND = "element-not-found"
    NO_SELECTION = "no-selection"
    CLICK_FAILED = "click-failed"
    EVALUATION_FAILED = "evaluation-failed"
    OPERATION_TIMEOUT = "operation-timeout"
    INTERNAL_ERROR = "internal-error"


# ── CLI-specific recovery hints ──────────────────────────────────────

_CLI_HINTS: dict[ProblemType, str] = {
    ProblemType.BROWSER_UNAVAILABLE: "Start the browser with --remote-debugging-port, or pass --ws / set BROWSER_WS_URL.",
    ProblemType.NO_ACTIVE_PAGE: "Open a tab in the browser, then retry.",
    ProblemType.NO_SELECTION: "Run again and click an element before the picker times out.",
    ProblemType.CLICK_FAILED: "The element may be covered or disabled. Try --scroll, or inspect it without --click.",
}


# ── ProblemDetail dataclass ──────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ProblemDetail:
    """One failed invocation, ready to print."""

    type: ProblemType = ProblemType.INTERNAL_ERROR
    detail: str = ""
    extensions: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        """Machine-readable failure: ``ok``/``error`` plus any extensions."""
        d: dict[str, Any] = {"ok": False, "error": self.detail}
        for key, value in self.extensions.items():
            if key not in d:
                d[key] = value
        return d

    def to_cli_text(self) -> str:
        """Line-oriented text for stderr."""
        lines = [self.detail]
        hint = _CLI_HINTS.get(self.type)
        if hint:
            lines.append(f"hint: {hint}")
        return "\n".join(lines)


# ── Factory ──────────────────────────────────────────────────────────


def classify(exc: BaseException) -> ProblemType:
    if isinstance(exc, BrowserConnectionError):
        return ProblemType.BROWSER_UNAVAILABLE
    if isinstance(exc, NoActivePageError):
        return ProblemType.NO_ACTIVE_PAGE
    if isinstance(exc, NoSelectionError):
        return ProblemType.NO_SELECTION
    if isinstance(exc, ElementNotFoundError):
        return ProblemType.ELEMENT_NOT_FOUND
    if isinstance(exc, ClickFailedError):
        return ProblemType.CLICK_FAILED
    if isinstance(exc, EvaluationError):
        return ProblemType.EVALUATION_FAILED
    if isinstance(exc, (OperationTimeoutError, TimeoutError)):
        return ProblemType.OPERATION_TIMEOUT
    return ProblemType.INTERNAL_ERROR


def from_exception(exc: BaseException, *, fallback_prefix: str = "Element lookup failed") -> ProblemDetail:
    """Build a ProblemDetail; unknown exceptions are prefixed with *fallback_prefix*."""
    ptype = classify(exc)
    if isinstance(exc, PagePickError):
        detail = str(exc)
    else:
        detail = f"{fallback_prefix}: {exc}"

    extensions: dict[str, Any] = {}
    if isinstance(exc, ClickFailedError) and exc.descriptor is not None:
        extensions["element"] = exc.descriptor.to_dict()
    return ProblemDetail(type=ptype, detail=detail, extensions=extensions)
