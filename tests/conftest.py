"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any ``tunnel`` import so the settings
object picks them up.
"""

import os

os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_CLIENT_IP_HEADER", "Fly-Client-Ip")
os.environ.setdefault("APP_STATIC_DIR", "")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import AsyncIterator, Callable

import httpx
import pytest_asyncio

from tunnel.adapters.relay.httpx_client import HttpxRelay

Handler = Callable[[httpx.Request], httpx.Response]


@pytest_asyncio.fixture
async def make_relay() -> AsyncIterator[Callable[..., HttpxRelay]]:
    """Build HttpxRelays whose upstream is the given handler.

    The mock-backed clients are closed when the test finishes.
    """

    clients: list[httpx.AsyncClient] = []

    def _make(handler: Handler, *, timeout_seconds: float = 5.0) -> HttpxRelay:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler),
            follow_redirects=True,
        )
        clients.append(client)
        return HttpxRelay(timeout_seconds=timeout_seconds, client=client)

    yield _make

    for client in clients:
        await client.aclose()
