"""Application factory for the tunnel service.

Centralizes app construction (middleware, handlers, routers, lifespan) so
tests can build isolated instances with their own limiter and relay.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from tunnel.adapters.rate_limit.base import AbstractRateLimiter
from tunnel.adapters.relay.base import AbstractRelay
from tunnel.adapters.relay.factory import create_relay
from tunnel.api.routes import health_router, tunnel_router
from tunnel.core.config import settings
from tunnel.core.exception_handlers import setup_exception_handlers
from tunnel.core.logging import configure_logging
from tunnel.core.middleware import cors_middleware, request_id_middleware
from tunnel.core.rate_limit import create_rate_limiter, reset_periodically

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the relay client and the window reset task for the app's lifetime."""

    owns_relay = app.state.relay is None
    if owns_relay:
        app.state.relay = create_relay()

    reset_task = asyncio.create_task(
        reset_periodically(app.state.rate_limiter, settings.app.rate_limit_window_seconds),
        name="rate-limit-window-reset",
    )
    logger.info(
        "tunnel.started",
        extra={
            "limit": app.state.rate_limiter.limit,
            "window_s": settings.app.rate_limit_window_seconds,
        },
    )
    try:
        yield
    finally:
        reset_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reset_task
        if owns_relay:
            await app.state.relay.aclose()
            app.state.relay = None
        logger.info("tunnel.stopped")


def create_app(
    *,
    rate_limiter: AbstractRateLimiter | None = None,
    relay: AbstractRelay | None = None,
    static_dir: str | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limiter: Limiter to use; built from settings when omitted.
        relay: Relay to use; when omitted one is created at startup and
            closed at shutdown.
        static_dir: Directory served at ``/``; ``None`` uses the configured
            one, an empty string disables the mount. Skipped when the
            directory does not exist.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="URL Tunnel",
        description=(
            "Fetches a URL server-side and relays the response as JSON or JSONP "
            "so browser clients can read cross-origin resources."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.rate_limiter = rate_limiter if rate_limiter is not None else create_rate_limiter()
    app.state.relay = relay

    # Middleware (last registered runs first)
    app.middleware("http")(cors_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(tunnel_router)
    app.include_router(health_router)

    configured = settings.app.static_dir if static_dir is None else static_dir
    static_path = Path(configured or "")
    if static_path.parts and static_path.is_dir():
        app.mount("/", StaticFiles(directory=static_path, html=True), name="static")

    return app
