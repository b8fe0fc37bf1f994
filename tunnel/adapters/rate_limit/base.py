"""Rate limiter interfaces.

The tunnel service depends on this abstraction rather than the concrete
in-memory store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single admission check.

    Attributes:
        allowed: Whether the request is admitted.
        limit: Max requests admitted per window.
        count: Requests recorded for the key in the current window,
            including this one.
        remaining: Requests still admissible in the current window.
        window_started_at: UNIX epoch seconds of the last reset.
    """

    allowed: bool
    limit: int
    count: int
    remaining: int
    window_started_at: float


class AbstractRateLimiter(ABC):
    """Interface for fixed-window rate limiters."""

    @property
    @abstractmethod
    def limit(self) -> int:
        """Max requests admitted per key and window."""
        raise NotImplementedError

    @abstractmethod
    def consume(self, key: str) -> RateLimitResult:
        """Record one request for ``key`` and decide whether it is admitted.

        Args:
            key: Client identifier. The empty string is a valid key.

        Returns:
            RateLimitResult describing the decision.
        """
        raise NotImplementedError

    @abstractmethod
    def reset(self) -> None:
        """Discard every counter and start a new window."""
        raise NotImplementedError

    def admit(self, key: str) -> bool:
        """Record one request for ``key`` and return whether it is admitted."""
        return self.consume(key).allowed
