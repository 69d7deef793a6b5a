# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for StageTimer."""

from __future__ import annotations

from pagepick.stage_timer import STAGE_HINTS, StageTimer, hint_for_stage


class TestStageTimer:
    def test_stages_in_order(self):
        timer = StageTimer()
        for stage in ("connect", "page", "resolve"):
            timer.enter(stage)
        timer.close()

        durations = timer.durations()
        assert list(durations) == ["connect", "page", "resolve"]
        assert all(ms >= 0 for ms in durations.values())

    def test_current(self):
        timer = StageTimer()
        assert timer.current is None
        timer.enter("connect")
        assert timer.current == "connect"
        timer.enter("pick")
        assert timer.current == "pick"
        timer.close()
        assert timer.current is None

    def test_close_twice(self):
        timer = StageTimer()
        timer.enter("a")
        timer.close()
        timer.close()
        assert list(timer.durations()) == ["a"]

    def test_open_stage_is_measured(self):
        timer = StageTimer()
        timer.enter("running")
        assert timer.durations()["running"] >= 0


class TestTimeoutReport:
    def test_shape(self):
        timer = StageTimer()
        timer.enter("connect")
        timer.enter("pick")

        report = timer.timeout_report()
        assert report["error"] == "timeout"
        assert report["timed_out_at"] == "pick"
        assert [s["stage"] for s in report["completed_stages"]] == ["connect"]
        assert report["total_ms"] >= report["timed_out_stage_ms"]
        assert report["hint"] == STAGE_HINTS["pick"]

    def test_nothing_started(self):
        report = StageTimer().timeout_report()
        assert report["timed_out_at"] == "unknown"
        assert report["completed_stages"] == []
        assert report["timed_out_stage_ms"] == 0.0


class TestHints:
    def test_known(self):
        assert "--port" in hint_for_stage("connect")
        assert "clickable" in hint_for_stage("click")

    def test_unknown_names_the_stage(self):
        assert "custom_stage" in hint_for_stage("custom_stage")
