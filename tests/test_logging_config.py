# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for pagepick.logging_config: structlog + stdlib bridge."""

from __future__ import annotations

import json
import logging
import sys

import pytest
import structlog

from pagepick.logging_config import configure, level_for


@pytest.fixture(autouse=True)
def _reset_logging():
    """Ensure clean logging state before/after each test."""
    root = logging.getLogger()
    old_handlers = root.handlers[:]
    old_level = root.level
    yield
    root.handlers = old_handlers
    root.setLevel(old_level)
    structlog.reset_defaults()


class TestConsoleRenderer:
    """Human mode: ConsoleRenderer on stderr."""

    def test_configure_console_mode(self):
        configure(json_output=False)
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr

    def test_console_output_is_human_readable(self, capsys):
        configure(json_output=False)
        logging.getLogger("test.console").info("picker armed")
        captured = capsys.readouterr()
        assert "picker armed" in captured.err
        assert captured.out == ""
        assert not captured.err.strip().startswith("{")


class TestJSONRenderer:
    """--json mode: JSONRenderer (machine-parseable)."""

    def test_json_output_is_valid_json(self, capsys):
        configure(json_output=True)
        logging.getLogger("pagepick.picker").warning("picker timed out")
        captured = capsys.readouterr()
        parsed = json.loads(captured.err.strip())
        assert parsed["event"] == "picker timed out"
        assert parsed["logger"] == "pagepick.picker"
        assert "timestamp" in parsed

    def test_stdout_stays_clean(self, capsys):
        configure(json_output=True)
        logging.getLogger("test.json").warning("on stderr only")
        assert capsys.readouterr().out == ""


class TestLogLevel:
    def test_default_level_is_info(self):
        configure()
        assert logging.getLogger().level == logging.INFO

    def test_invalid_level_falls_back_to_info(self):
        configure(level="NONEXISTENT")
        assert logging.getLogger().level == logging.INFO

    def test_no_handler_stacking(self):
        configure(json_output=False)
        configure(json_output=True)
        configure(json_output=False)
        assert len(logging.getLogger().handlers) == 1

    @pytest.mark.parametrize(
        ("quiet", "verbose", "expected"),
        [
            (False, False, "INFO"),
            (True, False, "WARNING"),
            (False, True, "DEBUG"),
            (True, True, "DEBUG"),
        ],
    )
    def test_level_for_flags(self, quiet, verbose, expected):
        assert level_for(quiet=quiet, verbose=verbose) == expected


class TestThirdPartyLoggers:
    def test_held_at_warning_by_default(self):
        configure(level="INFO")
        assert logging.getLogger("asyncio").level == logging.WARNING
        assert logging.getLogger("playwright").level == logging.WARNING

    def test_released_in_verbose_mode(self):
        configure(level=level_for(verbose=True))
        assert logging.getLogger("asyncio").level == logging.DEBUG
