"""Fixed-window request counters keyed by client address."""

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass


class RateLimitExceeded(Exception):
    """Raised when a key has used up its budget for the current window."""

    def __init__(self, message: str, retry_after: int, limit: int, reset_after: int) -> None:
        self.message = message
        self.retry_after = retry_after
        self.limit = limit
        self.reset_after = reset_after
        super().__init__(message)


@dataclass
class _Window:
    started_at: float
    count: int = 0


@dataclass(frozen=True)
class RateLimitStatus:
    """Snapshot used for the RateLimit-* response headers."""

    limit: int
    remaining: int
    reset_after: int

    def headers(self) -> dict[str, str]:
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_after),
        }


class FixedWindowRateLimiter:
    """
    At most max_hits per key within window_seconds; the window resets wholesale
    when it elapses (no sliding, no backoff escalation).
    """

    def __init__(
        self,
        max_hits: int,
        window_seconds: int,
        message: str,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_hits = max_hits
        self.window_seconds = window_seconds
        self.message = message
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def tracked_keys(self) -> int:
        """Number of client keys currently held in memory."""
        with self._lock:
            return len(self._windows)

    def _expired(self, window: _Window, now: float) -> bool:
        return now - window.started_at >= self.window_seconds

    def _sweep(self, now: float) -> None:
        # Runs at most once per window length.
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        for key in [k for k, w in self._windows.items() if self._expired(w, now)]:
            del self._windows[key]

    def _window(self, key: str, now: float) -> _Window:
        self._sweep(now)
        window = self._windows.get(key)
        if window is None or self._expired(window, now):
            window = _Window(started_at=now)
            self._windows[key] = window
        return window

    def _reset_after(self, window: _Window, now: float) -> int:
        return max(0, math.ceil(window.started_at + self.window_seconds - now))

    def _status(self, window: _Window, now: float) -> RateLimitStatus:
        return RateLimitStatus(
            limit=self.max_hits,
            remaining=max(0, self.max_hits - window.count),
            reset_after=self._reset_after(window, now),
        )

    def _exceeded(self, window: _Window, now: float) -> RateLimitExceeded:
        reset_after = self._reset_after(window, now)
        return RateLimitExceeded(
            self.message,
            retry_after=max(1, reset_after),
            limit=self.max_hits,
            reset_after=reset_after,
        )

    def check(self, key: str) -> RateLimitStatus:
        """Raise RateLimitExceeded if key has no budget left; does not consume budget."""
        with self._lock:
            now = self._clock()
            window = self._window(key, now)
            if window.count >= self.max_hits:
                raise self._exceeded(window, now)
            return self._status(window, now)

    def hit(self, key: str) -> RateLimitStatus:
        """Record one attempt for key without rejecting."""
        with self._lock:
            now = self._clock()
            window = self._window(key, now)
            window.count += 1
            return self._status(window, now)

    def consume(self, key: str) -> RateLimitStatus:
        """Record one attempt and raise RateLimitExceeded if it goes over the limit."""
        with self._lock:
            now = self._clock()
            window = self._window(key, now)
            window.count += 1
            if window.count > self.max_hits:
                raise self._exceeded(window, now)
            return self._status(window, now)
