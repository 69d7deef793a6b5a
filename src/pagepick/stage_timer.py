# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Per-command stage clock.

One command moves through named stages (connect, page, resolve or pick,
scroll, click, describe). The clock lives outside ``asyncio.timeout`` so
that when the host-side deadline fires it can still say where time went.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

STAGE_HINTS: dict[str, str] = {
    "connect": "Browser debugging endpoint is not answering. Check --host/--port or --ws.",
    "page": "Page enumeration stalled. The browser may be busy or hung.",
    "resolve": "The page did not answer the element query. It may be blocked by a dialog.",
    "pick": "No element was clicked before the picker deadline.",
    "scroll": "Scrolling the element into view did not finish.",
    "click": "The element never became clickable.",
    "describe": "The page stopped answering while the element was being described.",
}


def _ms(start: float, end: float) -> float:
    return round((end - start) * 1000, 1)


@dataclass(slots=True)
class _Span:
    stage: str
    started: float
    ended: float | None = None


@dataclass(slots=True)
class StageTimer:
    """Ordered spans, at most one open at a time."""

    origin: float = field(default_factory=time.perf_counter)
    spans: list[_Span] = field(default_factory=list)

    @property
    def current(self) -> str | None:
        if self.spans and self.spans[-1].ended is None:
            return self.spans[-1].stage
        return None

    def enter(self, stage: str) -> None:
        """Close the open span (if any) and open one for *stage*."""
        now = time.perf_counter()
        self._close_at(now)
        self.spans.append(_Span(stage, now))

    def close(self) -> None:
        self._close_at(time.perf_counter())

    def _close_at(self, now: float) -> None:
        if self.spans and self.spans[-1].ended is None:
            self.spans[-1].ended = now

    def durations(self) -> dict[str, float]:
        """{stage: ms}; an open span is measured up to now."""
        now = time.perf_counter()
        return {s.stage: _ms(s.started, s.ended if s.ended is not None else now) for s in self.spans}

    def timeout_report(self) -> dict[str, Any]:
        now = time.perf_counter()
        stage = self.current or "unknown"
        done = [s for s in self.spans if s.ended is not None]
        return {
            "error": "timeout",
            "completed_stages": [{"stage": s.stage, "ms": _ms(s.started, s.ended)} for s in done],
            "timed_out_at": stage,
            "timed_out_stage_ms": _ms(self.spans[-1].started, now) if self.current else 0.0,
            "total_ms": _ms(self.origin, now),
            "hint": hint_for_stage(stage),
        }


def hint_for_stage(stage: str) -> str:
    return STAGE_HINTS.get(stage, f"Timed out during '{stage}' stage.")
