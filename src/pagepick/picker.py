# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Interactive element picker.

Runs a short-lived state machine inside the page while the host awaits a
single ``evaluate_handle`` call:

    idle -> armed -> highlighting* -> resolved | cancelled | timedout

- hover replaces the single highlighted node's outline (previous one reverted)
- click is swallowed (preventDefault + stopPropagation) and resolves the pick
- the in-page timer, window blur, or a host cancel event end it with no selection

All three terminal transitions go through one settle point guarded by the
state, so cleanup (listeners, outline, cursor) runs exactly once.

The picked node is handed back through the resolved value itself: the host
holds it as a JSHandle, reads the summary, takes the ``node`` property as an
ElementHandle and disposes the result. Nothing is written to ``window``.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import suppress
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from playwright.async_api import ElementHandle, Page

from .errors import OperationTimeoutError
from .selector import SELECTOR_FUNCTIONS_JS

logger = logging.getLogger(__name__)

DEFAULT_PICK_TIMEOUT_MS = 60000
OUTER_GRACE_MS = 5000  # host-side slack on top of the in-page timer
PICKER_HARD_CAP_MS = 600000  # host-side cap when the in-page timer is disabled
_CANCEL_TIMEOUT_S = 2.0

CANCEL_EVENT = "pagepick:cancel"
HIGHLIGHT_OUTLINE = "3px solid #ff4444"


class PickerState(StrEnum):
    IDLE = "idle"
    ARMED = "armed"
    HIGHLIGHTING = "highlighting"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"
    TIMED_OUT = "timedout"

    @property
    def is_terminal(self) -> bool:
        return self in (PickerState.RESOLVED, PickerState.CANCELLED, PickerState.TIMED_OUT)


@dataclass
class PickOutcome:
    """What one picker session produced."""

    session_id: str
    state: PickerState
    summary: dict[str, Any] | None = None  # selector, tag, text, rect
    element: ElementHandle | None = None
    error: str | None = None  # in-page cleanup or summary failure

    @property
    def selected(self) -> bool:
        return self.state is PickerState.RESOLVED and self.element is not None


# ---------------------------------------------------------------------------
# In-page state machine
# ---------------------------------------------------------------------------

PICKER_JS = (
    "async ({ sessionId, timeoutMs, outline, cancelEvent }) => {"
    + SELECTOR_FUNCTIONS_JS
    + r"""
  const TERMINAL = new Set(["resolved", "cancelled", "timedout"]);
  const root = document.body || document.documentElement;
  const originalCursor = root.style.cursor;
  const rootHadStyle = root.hasAttribute("style");
  const machine = {
    state: "idle",
    node: null,
    previousOutline: "",
    hadStyle: false,
    timerId: null,
    cleaned: false,
  };

  let settle;
  const settled = new Promise((resolve) => {
    settle = resolve;
  });

  // Leave no empty style="" behind on nodes that had no style attribute.
  const dropEmptyStyle = (node, hadStyle) => {
    if (!hadStyle && !node.getAttribute("style")) node.removeAttribute("style");
  };

  const revertHighlight = () => {
    const node = machine.node;
    machine.node = null;
    if (node) {
      node.style.outline = machine.previousOutline;
      dropEmptyStyle(node, machine.hadStyle);
    }
  };

  const highlight = (node) => {
    if (machine.node === node) return;
    revertHighlight();
    machine.node = node;
    machine.previousOutline = node.style.outline;
    machine.hadStyle = node.hasAttribute("style");
    node.style.outline = outline;
    machine.state = "highlighting";
  };

  const cleanup = () => {
    if (machine.cleaned) return;
    machine.cleaned = true;
    document.removeEventListener("mouseover", onHover, true);
    document.removeEventListener("click", onClick, true);
    document.removeEventListener(cancelEvent, onCancel);
    window.removeEventListener("blur", onBlur);
    if (machine.timerId !== null) {
      clearTimeout(machine.timerId);
      machine.timerId = null;
    }
    try {
      revertHighlight();
    } finally {
      root.style.cursor = originalCursor;
      dropEmptyStyle(root, rootHadStyle);
    }
  };

  const finish = (terminal, element) => {
    if (TERMINAL.has(machine.state)) return;
    machine.state = terminal;
    const node = element || null;
    let summary = null;
    let error = null;
    try {
      cleanup();
    } catch (err) {
      error = String(err);
    }
    if (node) {
      try {
        summary = { selector: toSelector(node), tag: node.tagName.toLowerCase(), text: textOf(node), rect: rectOf(node) };
      } catch (err) {
        error = error || String(err);
      }
    }
    settle({ session: sessionId, state: terminal, summary: summary, node: node, error: error });
  };

  function onHover(event) {
    if (TERMINAL.has(machine.state)) return;
    const target = event.target;
    if (!(target instanceof Element) || !target.style) return;
    highlight(target);
  }

  function onClick(event) {
    event.preventDefault();
    event.stopPropagation();
    event.stopImmediatePropagation();
    const target = event.target instanceof Element ? event.target : null;
    finish("resolved", target);
  }

  function onBlur() {
    finish("cancelled", null);
  }

  function onCancel(event) {
    if (event.detail === sessionId) finish("cancelled", null);
  }

  root.style.cursor = "crosshair";
  document.addEventListener("mouseover", onHover, true);
  document.addEventListener("click", onClick, true);
  document.addEventListener(cancelEvent, onCancel);
  window.addEventListener("blur", onBlur);
  if (timeoutMs > 0) {
    machine.timerId = setTimeout(() => finish("timedout", null), timeoutMs);
  }
  machine.state = "armed";

  return await settled;
}"""
)

_CANCEL_JS = "([name, sessionId]) => document.dispatchEvent(new CustomEvent(name, { detail: sessionId }))"

_SUMMARY_JS = "(r) => ({ session: r.session, state: r.state, summary: r.summary, error: r.error })"


def outer_cap_ms(timeout_ms: int) -> int:
    """Host-side bound for a pick whose in-page timer is *timeout_ms* (0 = disabled)."""
    if timeout_ms > 0:
        return timeout_ms + OUTER_GRACE_MS
    return PICKER_HARD_CAP_MS


async def cancel_pick(page: Page, session_id: str) -> bool:
    """Ask the in-page session *session_id* to cancel and clean up.

    Best effort: returns False if the page could not be reached.
    """
    try:
        async with asyncio.timeout(_CANCEL_TIMEOUT_S):
            await page.evaluate(_CANCEL_JS, [CANCEL_EVENT, session_id])
        return True
    except Exception:
        logger.debug("Picker cancel dispatch failed (session=%s)", session_id, exc_info=True)
        return False


async def _take_handoff(result) -> PickOutcome:
    """Read the settled result, detach the node, and dispose the handoff."""
    try:
        raw = await result.evaluate(_SUMMARY_JS)
        node = await result.get_property("node")
        element = node.as_element()
        if element is None:
            await node.dispose()
    finally:
        await result.dispose()
    error = raw.get("error")
    if error:
        logger.warning("Picker settled with an in-page error: %s", error)
    return PickOutcome(
        session_id=raw.get("session", ""),
        state=PickerState(raw.get("state", PickerState.CANCELLED)),
        summary=raw.get("summary"),
        element=element,
        error=error,
    )


async def pick_element(page: Page, timeout_ms: int | None = DEFAULT_PICK_TIMEOUT_MS) -> PickOutcome:
    """Let the user click an element in *page*; block until pick, timeout, or cancel.

    *timeout_ms* of None uses the default; 0 disables the in-page timer, in
    which case only the host-side hard cap applies.
    """
    if timeout_ms is None:
        timeout_ms = DEFAULT_PICK_TIMEOUT_MS
    timeout_ms = max(int(timeout_ms), 0)
    session_id = uuid.uuid4().hex
    cap_ms = outer_cap_ms(timeout_ms)

    logger.info("Picker armed (session=%s, timeout=%dms): click an element in the browser", session_id, timeout_ms)
    try:
        async with asyncio.timeout(cap_ms / 1000):
            result = await page.evaluate_handle(
                PICKER_JS,
                {
                    "sessionId": session_id,
                    "timeoutMs": timeout_ms,
                    "outline": HIGHLIGHT_OUTLINE,
                    "cancelEvent": CANCEL_EVENT,
                },
            )
    except TimeoutError:
        with suppress(asyncio.CancelledError):
            await cancel_pick(page, session_id)
        raise OperationTimeoutError(
            f"Timed out waiting for element selection after {cap_ms}ms",
            stage="pick",
        ) from None

    outcome = await _take_handoff(result)
    if outcome.state is PickerState.TIMED_OUT:
        logger.info("Picker timed out (session=%s)", session_id)
    elif outcome.state is PickerState.CANCELLED:
        logger.info("Picker cancelled (session=%s)", session_id)
    elif outcome.selected:
        logger.info("Picker resolved (session=%s): %s", session_id, (outcome.summary or {}).get("selector", ""))
    return outcome
