"""HTTP middleware for CORS and request correlation.

``cors_middleware`` stamps every response with permissive CORS headers and
answers preflight requests directly.

``request_id_middleware``:
- Accepts incoming X-Request-ID header or generates a UUID
- Stores request_id in contextvars for access throughout the request lifecycle
- Injects request_id and total duration into response headers
- Emits one ``http.request`` log line per request

Usage:
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(cors_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from tunnel.core.config import settings
from tunnel.core.exception_handlers import general_exception_handler
from tunnel.core.logging import clear_request_id, client_hash, set_request_id

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Allow": "*",
    "Access-Control-Allow-Methods": "POST, GET, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Origin, X-Requested-With, Content-Type, Accept, Referer, User-Agent",
}


async def cors_middleware(request: Request, call_next) -> Response:
    """Allow any origin to call the service.

    Preflight ``OPTIONS`` requests are answered with 200 without reaching
    the routes. Unexpected errors are turned into the generic 500 here so
    that reply still gets the CORS and request id headers.
    """

    if request.method == "OPTIONS":
        response = Response(status_code=200)
    else:
        try:
            response = await call_next(request)
        except Exception as exc:
            response = await general_exception_handler(request, exc)

    response.headers.update(CORS_HEADERS)
    return response


async def request_id_middleware(request: Request, call_next) -> Response:
    """HTTP middleware for request ID generation and propagation.

    If the client provides an X-Request-ID header (configurable via
    LOG_REQUEST_ID_HEADER), that value is used. Otherwise, a new UUID is
    generated. The ID is stored in contextvars for log correlation and echoed
    back in the response headers.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The response from the next handler with request_id and
            duration headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "http.request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "client_hash": client_hash(
                    request.headers.get(settings.app.client_ip_header, "")
                ),
                "user_agent": request.headers.get("User-Agent"),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
