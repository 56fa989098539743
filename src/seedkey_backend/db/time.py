# src/seedkey_backend/db/time.py
"""Time utilities shared by the stores and services."""

import time


def now_ms() -> int:
    """Return the current time as integer epoch milliseconds."""
    return time.time_ns() // 1_000_000
