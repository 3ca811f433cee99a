"""
Fixed-delay limiter that spaces consecutive upstream queries of one adapter.
"""
from __future__ import annotations

import threading
import time
from typing import Callable, Dict


class RateLimiter:
    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._limits: Dict[str, float] = {}
        self._last_done: Dict[str, float] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._sleep = sleep

    def configure(self, key: str, min_interval: float) -> None:
        self._limits[key] = max(0.0, min_interval)

    def wait(self, key: str) -> None:
        """Block until ``min_interval`` has passed since the last query for ``key`` finished."""
        interval = self._limits.get(key)
        if not interval:
            return
        with self._lock:
            last = self._last_done.get(key)
        if last is None:
            return
        remaining = interval - (self._clock() - last)
        if remaining > 0:
            self._sleep(remaining)

    def mark(self, key: str) -> None:
        with self._lock:
            self._last_done[key] = self._clock()
