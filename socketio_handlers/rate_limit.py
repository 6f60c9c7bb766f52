"""Sliding-window send limiter for the live channel."""

import threading
import time
from collections import deque
from typing import Deque, Dict


class SendRateLimiter:
    def __init__(self, limit: int = 10, window_seconds: float = 8, clock=time.monotonic):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._sends: Dict[int, Deque[float]] = {}
        self._last_sweep = clock()

    def hit(self, user_id: int) -> bool:
        """Record a send attempt; True when the user is over the limit."""
        now = self._clock()
        with self._lock:
            if now - self._last_sweep > self.window_seconds:
                self._sweep(now)
            entries = self._sends.setdefault(user_id, deque())
            self._prune(entries, now)
            if len(entries) >= self.limit:
                return True
            entries.append(now)
            return False

    def reset(self, user_id: int) -> None:
        with self._lock:
            self._sends.pop(user_id, None)

    def tracked_users(self) -> int:
        with self._lock:
            return len(self._sends)

    def _prune(self, entries: Deque[float], now: float) -> None:
        while entries and now - entries[0] > self.window_seconds:
            entries.popleft()

    def _sweep(self, now: float) -> None:
        # drop users with no sends left in the window
        for user_id in list(self._sends):
            entries = self._sends[user_id]
            self._prune(entries, now)
            if not entries:
                del self._sends[user_id]
        self._last_sweep = now
