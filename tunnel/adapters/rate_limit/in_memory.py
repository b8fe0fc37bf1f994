"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: a single lock guards the counter store.
- Windows are not derived from the clock; they end when reset() is called
  by the background reset task.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

from tunnel.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Per-key request counter cleared wholesale at every window boundary.

    Each call to :meth:`consume` increments the key's counter and admits the
    request while the incremented count is at most ``limit``: exactly
    ``limit`` requests pass per window and request ``limit + 1`` is the
    first one rejected. Rejected requests are still counted.

    :meth:`reset` swaps in a fresh, empty store instead of deleting keys one
    by one, so a concurrent caller sees either the old store or the new one.
    """

    def __init__(
        self,
        *,
        limit: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of requests admitted per key and window.
            clock: Time source returning UNIX time in seconds, used to
                stamp the start of each window.

        Raises:
            ValueError: If limit is invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")

        self._limit = limit
        self._clock = clock
        self._lock = threading.Lock()
        self._counts: dict[str, int] = {}
        self._window_started_at = clock()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_started_at(self) -> float:
        return self._window_started_at

    def count(self, key: str) -> int:
        """Return the number of requests recorded for ``key`` in this window."""
        with self._lock:
            return self._counts.get(key, 0)

    def consume(self, key: str) -> RateLimitResult:
        """Record one request for ``key`` and decide whether it is admitted.

        Args:
            key: Client identifier. The empty string is a valid key shared by
                every caller without an identifiable address.

        Returns:
            RateLimitResult with the admission decision.
        """
        with self._lock:
            count = self._counts.get(key, 0) + 1
            self._counts[key] = count
            window_started_at = self._window_started_at

        return RateLimitResult(
            allowed=count <= self._limit,
            limit=self._limit,
            count=count,
            remaining=max(0, self._limit - count),
            window_started_at=window_started_at,
        )

    def reset(self) -> None:
        """Replace the counter store with an empty one and restart the window."""
        fresh: dict[str, int] = {}
        started_at = self._clock()
        with self._lock:
            self._counts = fresh
            self._window_started_at = started_at

    def size(self) -> int:
        """Number of keys counted in the current window."""
        with self._lock:
            return len(self._counts)
