"""Nonce source for authenticated requests."""

from __future__ import annotations

import threading
import time
from typing import Callable


class NonceGenerator:
    """Strictly increasing nonce derived from wall-clock milliseconds.

    Each millisecond reading is scaled by 100 so that calls landing in the
    same millisecond (or after the clock steps back) can be bumped by one
    without reaching the value the next millisecond will produce.
    """

    SCALE = 100

    def __init__(self, clock_ms: Callable[[], int] | None = None) -> None:
        self._clock_ms = clock_ms or (lambda: int(time.time() * 1000))
        self._last = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            candidate = self._clock_ms() * self.SCALE
            if candidate <= self._last:
                self._last += 1
            else:
                self._last = candidate
            return self._last
