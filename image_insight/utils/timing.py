"""Clock helpers shared by the request and handler layers."""

from __future__ import annotations

import time
from datetime import datetime, timezone


def utc_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def elapsed_ms(started: float) -> int:
    """Milliseconds elapsed since ``started`` (a :func:`time.perf_counter` reading)."""
    return max(0, int(round((time.perf_counter() - started) * 1000)))
