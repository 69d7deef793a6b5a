# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import pagepick  # noqa: F401
except ImportError:
    raise ImportError("pagepick is not installed. Run: pip install -e '.[dev]'") from None

import pytest


@pytest.fixture(autouse=True)
def _block_real_connect(request, monkeypatch):
    """Safety net: prevent real CDP connections in unit tests.

    Tests that need a fake Playwright should patch
    ``pagepick.browser_session.async_playwright`` explicitly; that patch
    takes priority over this fixture. Live tests opt out with
    ``@pytest.mark.browser``.
    """
    if "browser" in request.keywords:
        return

    def _no_real_playwright():
        raise RuntimeError(
            "Test tried to start a real Playwright driver. Patch 'pagepick.browser_session.async_playwright'."
        )

    monkeypatch.setattr("pagepick.browser_session.async_playwright", _no_real_playwright)


@pytest.fixture(autouse=True)
def _clean_browser_env(monkeypatch):
    """Connection env vars from the developer's shell must not leak into tests."""
    for name in ("BROWSER_WS_URL", "BROWSER_HOST", "BROWSER_PORT"):
        monkeypatch.delenv(name, raising=False)
