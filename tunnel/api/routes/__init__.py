from __future__ import annotations

from tunnel.api.routes.health import router as health_router
from tunnel.api.routes.tunnel import router as tunnel_router

__all__ = ["health_router", "tunnel_router"]
