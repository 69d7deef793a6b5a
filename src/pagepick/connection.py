# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Connection resolution: flags + environment -> one debugging address.

Leaf module, no I/O and no failure modes. Malformed numbers fall back to
their defaults instead of raising so a typo in a flag never aborts a command.
"""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 9222

# Timeouts (ms)
DEFAULT_RESOLVE_TIMEOUT_MS = 15000
DEFAULT_OPERATION_TIMEOUT_MS = 30000

ENV_WS_URL = "BROWSER_WS_URL"
ENV_HOST = "BROWSER_HOST"
ENV_PORT = "BROWSER_PORT"


def normalize_number(value: object, fallback: int) -> int:
    """Coerce *value* to an int, returning *fallback* when it is not a finite number."""
    if isinstance(value, bool) or value is None:
        return fallback
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return fallback
        try:
            value = float(value)
        except ValueError:
            return fallback
    if not isinstance(value, (int, float)):
        return fallback
    if isinstance(value, float) and not math.isfinite(value):
        return fallback
    return int(value)


@dataclass(frozen=True, slots=True)
class ConnectionSettings:
    """Raw connection inputs, before precedence is applied."""

    endpoint: str | None = None
    host: str | None = None
    port: object = None
    env_endpoint: str | None = None
    env_host: str | None = None
    env_port: object = None


@dataclass(frozen=True, slots=True)
class ConnectionDescriptor:
    """Exactly one of ``endpoint`` or ``host``/``port`` is set."""

    endpoint: str | None = None
    host: str | None = None
    port: int | None = None

    @property
    def is_endpoint(self) -> bool:
        return self.endpoint is not None

    @property
    def address(self) -> str:
        """URL accepted by ``BrowserType.connect_over_cdp``."""
        if self.endpoint is not None:
            return self.endpoint
        return f"http://{self.host}:{self.port}"


def settings_from_env(
    *,
    endpoint: str | None = None,
    host: str | None = None,
    port: object = None,
    environ: Mapping[str, str] | None = None,
) -> ConnectionSettings:
    """Pair explicit flag values with the process environment."""
    env = os.environ if environ is None else environ
    return ConnectionSettings(
        endpoint=endpoint,
        host=host,
        port=port,
        env_endpoint=env.get(ENV_WS_URL, "").strip() or None,
        env_host=env.get(ENV_HOST, "").strip() or None,
        env_port=env.get(ENV_PORT, "").strip() or None,
    )


def resolve_connection(settings: ConnectionSettings) -> ConnectionDescriptor:
    """Apply precedence: explicit endpoint > env endpoint > host/port.

    When an endpoint wins, host and port are ignored entirely.
    """
    endpoint = settings.endpoint or settings.env_endpoint
    if endpoint:
        return ConnectionDescriptor(endpoint=endpoint)

    host = settings.host or settings.env_host or DEFAULT_HOST
    raw_port = settings.port if settings.port is not None else settings.env_port
    port = normalize_number(raw_port, DEFAULT_PORT)
    return ConnectionDescriptor(host=host, port=port)
