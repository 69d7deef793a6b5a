# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for failure classification and rendering."""

from __future__ import annotations

import pytest

from pagepick import ElementDescriptor
from pagepick.errors import (
    BrowserConnectionError,
    ClickFailedError,
    EvaluationError,
    NoActivePageError,
    NoSelectionError,
    OperationTimeoutError,
    SelectorNotFoundError,
    TextNotFoundError,
)
from pagepick.problem_details import ProblemDetail, ProblemType, classify, from_exception


class TestClassify:
    @pytest.mark.parametrize(
        ("exc", "expected"),
        [
            (BrowserConnectionError("Failed to connect to browser: refused"), ProblemType.BROWSER_UNAVAILABLE),
            (NoActivePageError(), ProblemType.NO_ACTIVE_PAGE),
            (SelectorNotFoundError("#x"), ProblemType.ELEMENT_NOT_FOUND),
            (TextNotFoundError("x"), ProblemType.ELEMENT_NOT_FOUND),
            (NoSelectionError("timeout"), ProblemType.NO_SELECTION),
            (ClickFailedError("covered"), ProblemType.CLICK_FAILED),
            (EvaluationError("ReferenceError: x is not defined"), ProblemType.EVALUATION_FAILED),
            (OperationTimeoutError("slow"), ProblemType.OPERATION_TIMEOUT),
            (ValueError("?"), ProblemType.INTERNAL_ERROR),
        ],
    )
    def test_mapping(self, exc, expected):
        assert classify(exc) is expected


class TestMessages:
    def test_selector_not_found_contract(self):
        problem = from_exception(SelectorNotFoundError("#nope"))
        assert problem.to_json() == {"ok": False, "error": "Selector not found: #nope"}

    def test_picker_timeout_and_cancel_look_the_same(self):
        timeout = from_exception(NoSelectionError("timeout")).to_json()
        cancel = from_exception(NoSelectionError("cancelled")).to_json()
        assert timeout == cancel == {"ok": False, "error": "No element selected."}

    def test_connection_failure_keeps_transport_message(self):
        problem = from_exception(BrowserConnectionError("Failed to connect to browser: connect ECONNREFUSED ::1:9222"))
        assert problem.detail == "Failed to connect to browser: connect ECONNREFUSED ::1:9222"

    def test_unknown_exception_gets_prefix(self):
        problem = from_exception(RuntimeError("boom"), fallback_prefix="Element lookup failed")
        assert problem.detail == "Element lookup failed: boom"

    def test_click_failure_includes_resolved_element(self):
        desc = ElementDescriptor(selector="#go", tag="button")
        body = from_exception(ClickFailedError("covered", descriptor=desc)).to_json()
        assert body["ok"] is False
        assert body["error"] == "Click failed: covered"
        assert body["element"]["selector"] == "#go"

    def test_extensions_never_shadow_contract(self):
        problem = ProblemDetail(detail="x", extensions={"ok": True, "error": "y", "extra": 1})
        assert problem.to_json() == {"ok": False, "error": "x", "extra": 1}


class TestCliText:
    def test_first_line_is_the_message(self):
        text = from_exception(NoActivePageError()).to_cli_text()
        lines = text.splitlines()
        assert lines[0] == "No active page found. Navigate first."
        assert lines[1].startswith("hint: ")

    def test_no_hint_for_not_found(self):
        assert from_exception(SelectorNotFoundError("#x")).to_cli_text() == "Selector not found: #x"
