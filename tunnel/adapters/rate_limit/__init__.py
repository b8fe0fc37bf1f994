"""Rate limiting adapters.

A small abstraction layer so the in-memory limiter can later be swapped for a
shared store without changing the tunnel service.
"""

from tunnel.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from tunnel.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter

__all__ = ["AbstractRateLimiter", "InMemoryFixedWindowRateLimiter", "RateLimitResult"]
