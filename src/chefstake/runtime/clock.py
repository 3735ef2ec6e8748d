from __future__ import annotations

import threading
import time
from typing import Protocol


class Clock(Protocol):
    """Monotone integer time axis (block height, seconds, ...)."""

    def now(self) -> int: ...


class ManualClock:
    """Clock advanced explicitly. Tests use it the way a dev chain mines blocks."""

    def __init__(self, start: int = 0) -> None:
        self._t = int(start)
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            return self._t

    def mine(self, n: int = 1) -> int:
        if int(n) < 0:
            raise ValueError("clock cannot move backwards")
        with self._lock:
            self._t += int(n)
            return self._t

    def set(self, t: int) -> None:
        # unchecked; may move backwards
        with self._lock:
            self._t = int(t)


class WallClock:
    """Unix seconds."""

    def now(self) -> int:
        return int(time.time())
