"""Sliding-window request limiter for the AI narrative calls.

The limiter is an explicit object with an injected clock so callers can share
one instance per session and tests can drive time deterministically.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from collections.abc import Callable


class RateLimitExceeded(RuntimeError):
    """Raised by :meth:`SlidingWindowRateLimiter.acquire` when the window is full."""

    def __init__(self, retry_after: float) -> None:
        super().__init__(f"Rate limit exceeded. Please wait {retry_after:.0f}s and retry.")
        self.retry_after = retry_after


class SlidingWindowRateLimiter:
    """Allow at most ``max_requests`` acquisitions per ``window_seconds``.

    Timestamps older than the window (``now - t >= window_seconds``) are
    forgotten on every check. A refused attempt is not recorded.
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests <= 0:
            raise ValueError("max_requests must be a positive integer")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._stamps: deque[float] = deque()
        self._lock = threading.Lock()

    def _evict(self, now: float) -> None:
        while self._stamps and now - self._stamps[0] >= self.window_seconds:
            self._stamps.popleft()

    def try_acquire(self) -> bool:
        with self._lock:
            now = self._clock()
            self._evict(now)
            if len(self._stamps) >= self.max_requests:
                return False
            self._stamps.append(now)
            return True

    def acquire(self) -> None:
        if not self.try_acquire():
            raise RateLimitExceeded(self.retry_after())

    def retry_after(self) -> float:
        """Seconds until the oldest recorded request leaves the window."""

        with self._lock:
            now = self._clock()
            self._evict(now)
            if len(self._stamps) < self.max_requests:
                return 0.0
            return max(0.0, self.window_seconds - (now - self._stamps[0]))

    @property
    def in_window(self) -> int:
        with self._lock:
            self._evict(self._clock())
            return len(self._stamps)


__all__ = ["RateLimitExceeded", "SlidingWindowRateLimiter"]
