# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Property-based fuzz tests using Hypothesis.

Verifies invariants hold for arbitrary inputs across connection
resolution, XPath quoting, and eval output truncation.
"""

from __future__ import annotations

try:
    from hypothesis import given, settings
    from hypothesis import strategies as st
except ImportError:
    import pytest

    pytest.skip("hypothesis not installed", allow_module_level=True)

import pytest

from pagepick.connection import DEFAULT_PORT, ConnectionSettings, normalize_number, resolve_connection
from pagepick.evaluate import truncate_result
from pagepick.resolver import xpath_literal

# ---------------------------------------------------------------------------
# Module-level strategies
# ---------------------------------------------------------------------------

ANY_PORT_INPUT = st.one_of(
    st.none(),
    st.integers(-(2**31), 2**31),
    st.floats(allow_nan=True, allow_infinity=True),
    st.text(max_size=20),
    st.booleans(),
)

ENDPOINT = st.from_regex(r"wss?://[a-z0-9.]{1,20}(:[0-9]{1,5})?/devtools/browser/[a-f0-9\-]{1,36}", fullmatch=True)

QUOTED_TEXT = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N", "Z"), whitelist_characters="\"'<>/&-"),
    max_size=80,
)

_fuzz = settings(max_examples=200, deadline=None)


def _decode_xpath_literal(literal: str) -> str:
    """Inverse of xpath_literal for the three shapes it emits."""
    if literal.startswith("concat(") and literal.endswith(")"):
        body = literal[len("concat(") : -1]
        pieces = body.split(", '\"', ")
        return '"'.join(piece[1:-1] for piece in pieces)
    return literal[1:-1]


@pytest.mark.fuzz
class TestConnectionProperties:
    @_fuzz
    @given(port=ANY_PORT_INPUT)
    def test_port_is_always_an_int(self, port):
        desc = resolve_connection(ConnectionSettings(port=port))
        assert isinstance(desc.port, int)
        assert desc.endpoint is None

    @_fuzz
    @given(endpoint=ENDPOINT, host=st.text(max_size=10), port=ANY_PORT_INPUT)
    def test_endpoint_always_wins(self, endpoint, host, port):
        desc = resolve_connection(ConnectionSettings(endpoint=endpoint, host=host, port=port))
        assert desc.endpoint == endpoint
        assert desc.host is None and desc.port is None

    @_fuzz
    @given(value=st.text(max_size=12))
    def test_normalize_never_raises(self, value):
        assert isinstance(normalize_number(value, DEFAULT_PORT), int)


@pytest.mark.fuzz
class TestXPathLiteralProperties:
    @_fuzz
    @given(text=QUOTED_TEXT)
    def test_round_trips(self, text):
        assert _decode_xpath_literal(xpath_literal(text)) == text

    @_fuzz
    @given(text=QUOTED_TEXT)
    def test_plain_literal_has_no_inner_delimiter(self, text):
        literal = xpath_literal(text)
        if not literal.startswith("concat("):
            assert literal[0] == literal[-1]
            assert literal[0] not in literal[1:-1]


@pytest.mark.fuzz
class TestTruncateProperties:
    @_fuzz
    @given(text=st.text(max_size=300), limit=st.integers(1, 200))
    def test_length_bound(self, text, limit):
        out = truncate_result(text, limit)
        assert len(out) <= limit + 1
        if len(text) <= limit:
            assert out == text
        else:
            assert out.endswith("…")
