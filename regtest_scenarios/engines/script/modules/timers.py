"""
Timer module for script engine: sleep, monotonic, elapsed.

`sleep` is injectable so tests do not block; the script's wall-clock limit still applies.
"""

import time
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any

MAX_SLEEP_SECONDS = 3600.0


def make_timer_module(*, sleep: Callable[[float], None] | None = None) -> Any:
    """Build the `timer` object: sleep(seconds), monotonic(), elapsed()."""
    _sleep = sleep or time.sleep
    started = time.monotonic()

    def sleep_(seconds: float) -> None:
        s = float(seconds)
        if s < 0:
            raise ValueError("sleep() seconds must be non-negative")
        _sleep(min(s, MAX_SLEEP_SECONDS))

    def monotonic() -> float:
        return time.monotonic()

    def elapsed() -> float:
        """Seconds since the script started."""
        return time.monotonic() - started

    return SimpleNamespace(sleep=sleep_, monotonic=monotonic, elapsed=elapsed)
