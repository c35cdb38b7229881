"""
Service clock.

Operations read the current time once, as whole unix seconds, from an
injected Clock so tests can drive time explicitly.
"""

import threading
import time
from typing import Protocol

SECONDS_PER_DAY = 86_400


class Clock(Protocol):
    def now(self) -> int:
        """Current unix time in whole seconds."""
        ...


class SystemClock:
    """Wall clock that never moves backwards, even if the host clock does."""

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            current = max(int(time.time()), self._last)
            self._last = current
            return current
