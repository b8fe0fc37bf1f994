"""Rate limiting wiring for the HTTP layer.

The limiter instance lives on ``app.state`` and is handed to the tunnel
service through FastAPI dependencies; nothing here keeps module-level state.

Window strategy:
- Fixed window per client identifier (trusted client IP header).
- A background task replaces the whole counter store every window.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from fastapi import Request

from tunnel.adapters.rate_limit.base import AbstractRateLimiter
from tunnel.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from tunnel.core.config import AppSettings, settings

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def create_rate_limiter(app_settings: AppSettings | None = None) -> AbstractRateLimiter:
    """Build the process-wide limiter from configuration."""

    cfg = app_settings or settings.app
    return InMemoryFixedWindowRateLimiter(limit=cfg.rate_limit_requests)


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """FastAPI dependency returning the limiter owned by the application."""

    return request.app.state.rate_limiter


def get_client_id(request: Request) -> str:
    """FastAPI dependency extracting the rate limit key.

    The key is read from the configured trusted header only. Callers without
    it all share the empty-string bucket.
    """

    return request.headers.get(settings.app.client_ip_header, "")


async def reset_periodically(
    limiter: AbstractRateLimiter,
    interval_seconds: float,
    *,
    sleep: Sleep = asyncio.sleep,
) -> None:
    """Reset ``limiter`` every ``interval_seconds`` until cancelled.

    Deadlines are computed from the event loop clock so the cadence does not
    drift with the time spent resetting. A failing reset is logged and the
    loop carries on with the next window.

    Args:
        limiter: Limiter whose counters are discarded at every boundary.
        interval_seconds: Window length in seconds.
        sleep: Awaitable sleep function (injected by tests).
    """

    loop = asyncio.get_running_loop()
    next_reset_at = loop.time() + interval_seconds

    while True:
        await sleep(max(0.0, next_reset_at - loop.time()))
        next_reset_at += interval_seconds

        try:
            limiter.reset()
        except Exception:
            logger.exception("rate_limit.reset_failed")
            continue

        logger.debug("rate_limit.window_reset", extra={"window_s": interval_seconds})
