import time
from collections import deque
from typing import Callable, Deque, Dict, Tuple


class SlidingWindowRateLimiter:
    """Per-key request limiter over a sliding time window.

    Each key (a client address) may make ``max_requests`` hits within any
    ``window_seconds`` span. Handlers run on a single event loop, so the
    bookkeeping needs no lock.

    Keys whose hits have all aged out are forgotten: on lookup, and by a
    sweep over every key at most once per window.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._next_sweep = clock() + window_seconds

    def __len__(self) -> int:
        """Number of keys currently tracked."""
        return len(self._hits)

    def _prune(self, key: str, now: float) -> Deque[float]:
        hits = self._hits.get(key)
        if hits is None:
            return deque()
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if not hits:
            del self._hits[key]
        return hits

    def sweep(self) -> int:
        """Forget every key with no hits left in the window. Returns how many were dropped."""
        now = self._clock()
        self._next_sweep = now + self.window_seconds
        before = len(self._hits)
        for key in list(self._hits):
            self._prune(key, now)
        return before - len(self._hits)

    def hit(self, key: str) -> Tuple[bool, int]:
        """Record a request for ``key``.

        Returns ``(allowed, remaining)``. Rejected requests are not recorded.
        """
        now = self._clock()
        if now >= self._next_sweep:
            self.sweep()
        hits = self._prune(key, now)
        if len(hits) >= self.max_requests:
            return False, 0
        hits.append(now)
        self._hits[key] = hits
        return True, self.max_requests - len(hits)

    def retry_after(self, key: str) -> float:
        """Seconds until ``key`` may make another request."""
        now = self._clock()
        hits = self._prune(key, now)
        if len(hits) < self.max_requests:
            return 0.0
        return max(hits[0] + self.window_seconds - now, 0.0)

    def reset(self) -> None:
        self._hits.clear()
        self._next_sweep = self._clock() + self.window_seconds
