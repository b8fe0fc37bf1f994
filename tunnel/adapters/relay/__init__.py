"""Relay adapter layer - performs outbound fetches for the tunnel."""

from tunnel.adapters.relay.base import AbstractRelay
from tunnel.adapters.relay.factory import create_relay
from tunnel.adapters.relay.httpx_client import HttpxRelay

__all__ = [
    "AbstractRelay",
    "HttpxRelay",
    "create_relay",
]
