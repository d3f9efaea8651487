"""Upstream event feeds: relay bridge and chain block listener."""

from arbwatch.upstream.bridge import RelayBridge
from arbwatch.upstream.chain import ChainListener
from arbwatch.upstream.connection import Backoff, ConnectionState, UpstreamConnection


__all__ = [
    "Backoff",
    "ChainListener",
    "ConnectionState",
    "RelayBridge",
    "UpstreamConnection",
]
