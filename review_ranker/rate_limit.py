"""Thread-safe in-memory sliding-window rate limiter."""
from __future__ import annotations

import time
from collections import deque
from threading import Lock
from typing import Callable, Deque, Dict, Tuple


class SlidingWindowRateLimiter:
    """Tracks accepted requests per key within a trailing time window.

    ``max_requests`` and ``window_seconds`` are trusted as given: a limit of
    zero rejects every call and a non-positive window never holds anything.
    Limits are per process; replicas enforce them independently.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window = window_seconds
        self._clock = clock
        self._requests: Dict[str, Deque[float]] = {}
        self._lock = Lock()

    def allow(self, key: str) -> bool:
        """Record and accept a request for ``key`` unless the window is full."""

        with self._lock:
            now = self._clock()
            cutoff = now - self.window
            q = self._requests.setdefault(key, deque())
            # Prune even when the call ends up rejected.
            while q and q[0] <= cutoff:
                q.popleft()
            if len(q) >= self.max_requests:
                return False
            q.append(now)
            return True

    def reset(self) -> None:
        """Forget every key. Meant for test setup and teardown."""

        with self._lock:
            self._requests = {}

    def sweep(self) -> int:
        """Drop keys with no timestamps left inside the window.

        ``allow`` never removes keys, so long-lived processes call this
        periodically to keep the key set bounded.
        """

        with self._lock:
            cutoff = self._clock() - self.window
            stale = [key for key, q in self._requests.items() if not q or q[-1] <= cutoff]
            for key in stale:
                del self._requests[key]
            return len(stale)

    def history(self, key: str) -> Tuple[float, ...]:
        """Return the stored timestamps for ``key``, oldest first."""

        with self._lock:
            return tuple(self._requests.get(key, ()))

    def __len__(self) -> int:
        with self._lock:
            return len(self._requests)
