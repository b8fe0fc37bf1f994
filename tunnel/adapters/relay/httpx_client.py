"""httpx-based relay adapter."""

from __future__ import annotations

import asyncio
import itertools
import logging

import httpx

from tunnel.adapters.relay.base import AbstractRelay
from tunnel.core.errors import (
    BodyReadFailureError,
    InvalidRequestError,
    RelayAppError,
    TransportFailureError,
)
from tunnel.schemas.tunnel import FetchResult, FetchStatus

logger = logging.getLogger(__name__)

_SUPPORTED_SCHEMES = ("http", "https")


class HttpxRelay(AbstractRelay):
    """Fetch arbitrary URLs with a shared ``httpx.AsyncClient``.

    Every call issues exactly one GET with no extra headers. There is no
    retry and no caching; every failure is reported through the 500
    envelope.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = 30.0,
        follow_redirects: bool = True,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the relay.

        Args:
            timeout_seconds: Upper bound for one fetch, body read included.
            follow_redirects: Whether upstream redirects are followed.
            client: Optional preconfigured client (tests inject a mock
                transport here). Clients passed in are not closed by
                :meth:`aclose`.
        """
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")

        self._timeout_seconds = timeout_seconds
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                timeout=timeout_seconds,
                follow_redirects=follow_redirects,
            )
        self._client = client
        self._sequence = itertools.count(1)

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    async def fetch(self, target_url: str) -> FetchResult:
        """Fetch ``target_url`` and normalize the outcome into a FetchResult.

        Args:
            target_url: URL supplied by the caller.

        Returns:
            FetchResult: Upstream body, content type and status code on
            success; empty content with ``http_code`` 500 on any failure.
        """
        fetch_id = next(self._sequence)
        logger.info("relay.request", extra={"fetch_id": fetch_id, "url": target_url})

        try:
            result = await asyncio.wait_for(
                self._fetch(target_url), timeout=self._timeout_seconds
            )
        except asyncio.TimeoutError:
            error: RelayAppError = TransportFailureError(
                code="transport_failure",
                message=f"fetch exceeded {self._timeout_seconds}s",
                details={"url": target_url, "error_type": "TimeoutError"},
            )
        except RelayAppError as exc:
            error = exc
        else:
            logger.info(
                "relay.response",
                extra={
                    "fetch_id": fetch_id,
                    "url": target_url,
                    "http_code": result.status.http_code,
                    "content_type": result.status.content_type,
                    "content_chars": len(result.content),
                },
            )
            return result

        logger.warning(
            f"relay.{error.code}",
            extra={
                "fetch_id": fetch_id,
                "url": target_url,
                "error_type": (error.details or {}).get("error_type"),
                "error_msg": error.message,
            },
        )
        return FetchResult.failure(target_url)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _build_request(self, target_url: str) -> httpx.Request:
        """Turn the caller's URL into an outbound GET.

        Raises:
            InvalidRequestError: If the URL is malformed or not HTTP(S).
        """
        try:
            request = self._client.build_request("GET", target_url)
        except (httpx.InvalidURL, ValueError, TypeError) as exc:
            raise InvalidRequestError(
                code="invalid_request",
                message=str(exc) or "malformed URL",
                details={"url": target_url, "error_type": type(exc).__name__},
            ) from exc

        if request.url.scheme not in _SUPPORTED_SCHEMES or not request.url.host:
            raise InvalidRequestError(
                code="invalid_request",
                message="URL must be absolute and use http or https",
                details={"url": target_url, "error_type": "UnsupportedURL"},
            )
        return request

    async def _fetch(self, target_url: str) -> FetchResult:
        request = self._build_request(target_url)

        try:
            response = await self._client.send(request, stream=True)
        except httpx.RequestError as exc:
            raise TransportFailureError(
                code="transport_failure",
                message=str(exc) or type(exc).__name__,
                details={"url": target_url, "error_type": type(exc).__name__},
            ) from exc

        try:
            body = await response.aread()
        except httpx.RequestError as exc:
            raise BodyReadFailureError(
                code="body_read_failure",
                message=str(exc) or type(exc).__name__,
                details={"url": target_url, "error_type": type(exc).__name__},
            ) from exc
        finally:
            await response.aclose()

        return FetchResult(
            content=body.decode("utf-8", errors="replace"),
            status=FetchStatus(
                url=target_url,
                content_type=response.headers.get("Content-Type", ""),
                http_code=response.status_code,
            ),
        )
