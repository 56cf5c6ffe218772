"""Strictly increasing nonce shared by the private calls of one client."""

import threading
import time
from typing import Optional


def nonce_time() -> int:
    """Current time in microseconds, e.g. 1503853685508098."""
    return int(time.time() * 1_000_000)


class Nonce:
    """Thread-safe nonce counter.

    Every value handed out by `next()` is strictly greater than the previous
    one, across all threads using the same instance.
    """

    STEP = 42

    def __init__(self, start: Optional[int] = None):
        self._value = start if start is not None else nonce_time()
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        """Last value handed out (or the starting point)."""
        with self._lock:
            return self._value

    def next(self) -> int:
        """Increment and return the nonce."""
        with self._lock:
            self._value += self.STEP
            return self._value

    def resync(self, floor: int) -> int:
        """Fast-forward so the next value is strictly greater than `floor`."""
        with self._lock:
            if floor > self._value:
                self._value = floor
            return self._value
