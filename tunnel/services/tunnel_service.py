"""Tunnel request handling: rate limit, fetch, and encode the reply.

The body formats are consumed by existing browser clients and must stay
byte-compatible:

- missing URL and rate limiting produce plain-text bodies
- admitted requests produce the compact JSON envelope, optionally wrapped
  as ``callback(<json>)`` for JSONP callers
"""

from __future__ import annotations

import json
import logging

from tunnel.adapters.rate_limit.base import AbstractRateLimiter
from tunnel.adapters.relay.base import AbstractRelay
from tunnel.core.logging import client_hash
from tunnel.schemas.tunnel import FetchRequest, FetchResult, TunnelReply

logger = logging.getLogger(__name__)

MISSING_URL_MESSAGE = "URL parameter is required."
RATE_LIMITED_TEMPLATE = "rate limited: you have a max of {limit} request per second"

TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
JSON_CONTENT_TYPE = "application/json"
JSONP_CONTENT_TYPE = "application/x-javascript"

# Escaped as \uXXXX so the payload stays inert when embedded in HTML or
# evaluated as a JSONP script.
_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}
_JSON_ESCAPE_TABLE = str.maketrans(_JSON_ESCAPES)


def encode_envelope(result: FetchResult) -> str:
    """Serialize a FetchResult to compact JSON.

    Field order is ``contents`` then ``status`` (``url``, ``content_type``,
    ``http_code``). Non-ASCII text is kept as UTF-8; HTML-sensitive
    characters and line separators are escaped.
    """
    payload = json.dumps(
        result.model_dump(by_alias=True),
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return payload.translate(_JSON_ESCAPE_TABLE)


def wrap_jsonp(callback: str, payload: str) -> str:
    """Wrap a JSON payload as a JSONP call expression."""
    return f"{callback}({payload})"


async def handle_get(
    request: FetchRequest,
    callback: str | None,
    *,
    limiter: AbstractRateLimiter,
    relay: AbstractRelay,
) -> TunnelReply:
    """Serve one tunnel call.

    Args:
        request: Target URL and client identifier.
        callback: JSONP callback name; empty or None for plain JSON.
        limiter: Rate limiter consulted before fetching.
        relay: Relay performing the outbound fetch.

    Returns:
        TunnelReply: Encoded body and the content type to declare.
    """
    if not request.target_url:
        logger.info("tunnel.missing_url", extra={"client_hash": client_hash(request.client_id)})
        return TunnelReply(body=MISSING_URL_MESSAGE.encode(), content_type=TEXT_CONTENT_TYPE)

    decision = limiter.consume(request.client_id)
    if not decision.allowed:
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "client_hash": client_hash(request.client_id),
                "limit": decision.limit,
                "count": decision.count,
            },
        )
        message = RATE_LIMITED_TEMPLATE.format(limit=decision.limit)
        return TunnelReply(body=message.encode(), content_type=TEXT_CONTENT_TYPE)

    logger.debug(
        "rate_limit.allowed",
        extra={
            "client_hash": client_hash(request.client_id),
            "limit": decision.limit,
            "remaining": decision.remaining,
        },
    )

    result = await relay.fetch(request.target_url)
    payload = encode_envelope(result)

    if callback:
        return TunnelReply(
            body=wrap_jsonp(callback, payload).encode(),
            content_type=JSONP_CONTENT_TYPE,
        )
    return TunnelReply(body=payload.encode(), content_type=JSON_CONTENT_TYPE)
