# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""PagePick: resolve DOM elements in a running browser over CDP.

Connects to an already-running Chromium through its remote debugging
endpoint, picks the active page, and turns a request into one element:
- a CSS selector (direct lookup)
- a text fragment (first element whose own text contains it)
- an interactive pick (the user clicks the element in the live page)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

TEXT_LIMIT = 160


@dataclass(frozen=True, slots=True)
class ElementRect:
    """Viewport-relative bounding box, rounded to integer pixels."""

    x: int
    y: int
    width: int
    height: int

    def to_dict(self) -> dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class ElementDescriptor:
    """Snapshot of a single DOM node at the instant of capture.

    ``selector`` re-identifies the node from the document root on a best-effort
    basis; it is not a live binding and goes stale after DOM mutation.
    """

    selector: str
    tag: str
    id: str | None = None
    classes: list[str] = field(default_factory=list)
    text: str = ""  # trimmed, at most TEXT_LIMIT chars
    attributes: dict[str, str] = field(default_factory=dict)
    rect: ElementRect = field(default_factory=lambda: ElementRect(0, 0, 0, 0))
    visible: bool = False
    children: int = 0

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> ElementDescriptor:
        """Build from the dict returned by the in-page describe script."""
        rect = raw.get("rect") or {}
        return cls(
            selector=raw.get("selector", ""),
            tag=raw.get("tag", ""),
            id=raw.get("id") or None,
            classes=list(raw.get("classes") or []),
            text=(raw.get("text") or "").strip()[:TEXT_LIMIT],
            attributes={str(k): "" if v is None else str(v) for k, v in (raw.get("attributes") or {}).items()},
            rect=ElementRect(
                x=int(rect.get("x", 0)),
                y=int(rect.get("y", 0)),
                width=int(rect.get("width", 0)),
                height=int(rect.get("height", 0)),
            ),
            visible=bool(raw.get("visible", False)),
            children=int(raw.get("children", 0)),
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON shape emitted on success (without the ``ok`` flag)."""
        return {
            "selector": self.selector,
            "tag": self.tag,
            "id": self.id,
            "classes": list(self.classes),
            "text": self.text,
            "attributes": dict(self.attributes),
            "rect": self.rect.to_dict(),
            "visible": self.visible,
            "children": self.children,
        }
