# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Selector synthesis and element description, evaluated in the page.

The synthesizer walks from a node up to the document root with an explicit
accumulator (no recursion), emitting one segment per element:
- ``#id`` anchors the chain and stops the walk
- otherwise ``tag.class1.class2`` plus ``:nth-of-type(n)`` when the parent
  has more than one child with the same tag
Segments are joined with `` > `` so the selector follows the strict parent chain.
"""

from __future__ import annotations

import logging

from playwright.async_api import ElementHandle

from . import ElementDescriptor

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Shared JS fragment: escapeIdent + toSelector
# ---------------------------------------------------------------------------

SELECTOR_FUNCTIONS_JS = r"""
const escapeIdent = (value) => {
  if (window.CSS && typeof window.CSS.escape === "function") {
    return window.CSS.escape(value);
  }
  return String(value).replace(/[^a-zA-Z0-9_\-]/g, (ch) => "\\" + ch);
};

const toSelector = (element) => {
  const parts = [];
  let current = element;
  while (current && current.nodeType === 1) {
    if (current.id) {
      parts.unshift("#" + escapeIdent(current.id));
      break;
    }
    let part = current.nodeName.toLowerCase();
    if (current.classList.length > 0) {
      part += "." + Array.from(current.classList, (cls) => escapeIdent(cls)).join(".");
    }
    const parent = current.parentElement;
    if (parent) {
      const sameTag = Array.from(parent.children).filter((child) => child.nodeName === current.nodeName);
      if (sameTag.length > 1) {
        part += ":nth-of-type(" + (sameTag.indexOf(current) + 1) + ")";
      }
    }
    parts.unshift(part);
    current = parent;
  }
  return parts.join(" > ");
};

const rectOf = (element) => {
  const rect = element.getBoundingClientRect();
  return {
    x: Math.round(rect.x),
    y: Math.round(rect.y),
    width: Math.round(rect.width),
    height: Math.round(rect.height),
  };
};

const textOf = (element) => (element.innerText ?? element.textContent ?? "").trim().slice(0, 160);
"""

# ---------------------------------------------------------------------------
# Full descriptor collection
# ---------------------------------------------------------------------------

DESCRIBE_ELEMENT_JS = (
    "(el, selectorHint) => {"
    + SELECTOR_FUNCTIONS_JS
    + r"""
  const attributes = {};
  for (const name of el.getAttributeNames()) {
    attributes[name] = el.getAttribute(name) ?? "";
  }
  return {
    selector: selectorHint ?? toSelector(el),
    tag: el.tagName.toLowerCase(),
    id: el.id || null,
    classes: Array.from(el.classList),
    text: textOf(el),
    attributes: attributes,
    rect: rectOf(el),
    visible: Boolean(el.offsetParent),
    children: el.children.length,
  };
}"""
)

SYNTHESIZE_SELECTOR_JS = "(el) => {" + SELECTOR_FUNCTIONS_JS + "\n  return toSelector(el);\n}"


async def synthesize_selector(handle: ElementHandle) -> str:
    """Compute a CSS selector that addresses *handle* from the document root."""
    return await handle.evaluate(SYNTHESIZE_SELECTOR_JS)


async def describe_element(handle: ElementHandle, selector: str | None = None) -> ElementDescriptor:
    """Capture a fresh descriptor for *handle*.

    When *selector* is given it is echoed verbatim instead of synthesized.
    """
    raw = await handle.evaluate(DESCRIBE_ELEMENT_JS, selector)
    descriptor = ElementDescriptor.from_raw(raw)
    logger.debug("Described <%s> as %s", descriptor.tag, descriptor.selector)
    return descriptor
