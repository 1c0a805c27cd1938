"""
Keyed in-memory rate limiter for sensitive actions (OTP, forum writes, listing creation).
"""

import time
from collections import defaultdict, deque
from threading import Lock
from typing import Callable, Deque, Dict, Optional

from grihome.config import settings
from grihome.utils.exceptions import RateLimitExceededError

SWEEP_INTERVAL_SECONDS = 60.0


class RateLimiter:
    """
    Sliding-window limiter, per process.
    Multi-instance deployments need a shared store instead.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = Lock()
        self._events: Dict[str, Deque[float]] = defaultdict(deque)
        self._windows: Dict[str, float] = {}
        self._last_sweep = clock()

    @property
    def tracked_keys(self) -> int:
        return len(self._events)

    def _sweep(self, now: float) -> None:
        """Drop keys whose events have all left their window. Caller holds the lock."""
        for key in list(self._events):
            q = self._events[key]
            win_start = now - self._windows.get(key, 0.0)
            while q and q[0] < win_start:
                q.popleft()
            if not q:
                del self._events[key]
                self._windows.pop(key, None)
        self._last_sweep = now

    def hit(self, *, key: str, limit: int, window_seconds: int, detail: str = "Too many requests") -> None:
        now = self._clock()
        win_start = now - float(window_seconds)
        with self._lock:
            if now - self._last_sweep >= SWEEP_INTERVAL_SECONDS:
                self._sweep(now)
            q = self._events[key]
            self._windows[key] = float(window_seconds)
            while q and q[0] < win_start:
                q.popleft()
            if len(q) >= int(limit):
                retry_after = int(q[0] + window_seconds - now) + 1
                raise RateLimitExceededError(retry_after, detail)
            q.append(now)

    def hit_action(self, action: str, subject: str, detail: Optional[str] = None) -> None:
        """Apply the configured limit for a named action (see settings.rate_limits)."""
        limit, window = settings.rate_limits.get(action, (60, 60))
        self.hit(
            key=f"{action}:{subject}",
            limit=limit,
            window_seconds=window,
            detail=detail or "Too many requests. Please slow down.",
        )

    def reset(self) -> None:
        with self._lock:
            self._events.clear()
            self._windows.clear()
            self._last_sweep = self._clock()


limiter = RateLimiter()
