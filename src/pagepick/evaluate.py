# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Evaluate a JavaScript expression in the active page."""

from __future__ import annotations

import json
import logging
from typing import Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from .errors import EvaluationError

logger = logging.getLogger(__name__)

DEFAULT_TRUNCATE = 8000

# Wraps the expression in an AsyncFunction so top-level await works.
_EVALUATE_JS = """async (code) => {
  const AsyncFunction = Object.getPrototypeOf(async function () {}).constructor;
  const fn = new AsyncFunction(`return (${code})`);
  return await fn();
}"""


async def evaluate_expression(page: Page, expression: str) -> Any:
    """Run *expression* in *page* and return its JSON-serializable result."""
    try:
        return await page.evaluate(_EVALUATE_JS, expression)
    except PlaywrightError as exc:
        raise EvaluationError(exc.message) from exc


def truncate_result(value: Any, max_length: int = DEFAULT_TRUNCATE) -> str:
    """Render *value* for humans, cut to *max_length* chars with a trailing ellipsis."""
    if value is None:
        return "null"
    if isinstance(value, str):
        text = value
    else:
        text = json.dumps(value, indent=2, ensure_ascii=False)
    if max_length > 0 and len(text) > max_length:
        return text[:max_length] + "…"
    return text
