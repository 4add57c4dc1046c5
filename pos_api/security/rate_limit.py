from __future__ import annotations

import threading
import time
from collections import deque


class RateLimiter:
    """Sliding-window counter keyed by client identifier, kept in process memory."""

    def __init__(self, *, max_requests: int, window_seconds: float, clock=time.monotonic) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def _prune(self, cutoff: float) -> None:
        for key in [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]:
            del self._hits[key]

    def hit(self, key: str) -> bool:
        """Record a request; return False when the key is over its limit."""
        now = self._clock()
        cutoff = now - self.window_seconds
        with self._lock:
            # Keys whose newest hit left the window are dropped so idle clients do not accumulate.
            self._prune(cutoff)
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= self.max_requests:
                return False
            hits.append(now)
            return True

    @property
    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
