from fastapi import APIRouter, Depends, Query, Request, Response

from tunnel.adapters.rate_limit.base import AbstractRateLimiter
from tunnel.adapters.relay.base import AbstractRelay
from tunnel.core.rate_limit import get_client_id, get_rate_limiter
from tunnel.schemas.tunnel import FetchRequest
from tunnel.services.tunnel_service import handle_get

router = APIRouter(tags=["Tunnel"])


def get_relay(request: Request) -> AbstractRelay:
    """FastAPI dependency returning the relay owned by the application."""
    return request.app.state.relay


@router.get("/get", response_class=Response)
async def tunnel_get(
    url: str = Query("", description="Absolute URL to fetch server-side."),
    callback: str = Query("", description="JSONP callback name; omit for plain JSON."),
    client_id: str = Depends(get_client_id),
    limiter: AbstractRateLimiter = Depends(get_rate_limiter),
    relay: AbstractRelay = Depends(get_relay),
) -> Response:
    """Fetch ``url`` on behalf of the caller and relay the result.

    The HTTP status is always 200. Fetch failures are reported through
    ``status.http_code`` in the JSON envelope; a missing URL and rate
    limiting are reported as plain-text bodies.
    """
    reply = await handle_get(
        FetchRequest(target_url=url, client_id=client_id),
        callback,
        limiter=limiter,
        relay=relay,
    )
    return Response(content=reply.body, media_type=reply.content_type)
