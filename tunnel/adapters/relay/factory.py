"""Factory for the relay used by the tunnel endpoint."""

from tunnel.adapters.relay.base import AbstractRelay
from tunnel.adapters.relay.httpx_client import HttpxRelay
from tunnel.core.config import RelaySettings, settings


def create_relay(relay_settings: RelaySettings | None = None) -> AbstractRelay:
    """Build the relay from configuration.

    Args:
        relay_settings: Optional relay settings; defaults to global settings.

    Returns:
        AbstractRelay: Relay owning its own HTTP client.
    """
    cfg = relay_settings or settings.relay
    return HttpxRelay(
        timeout_seconds=cfg.timeout_seconds,
        follow_redirects=cfg.follow_redirects,
    )
