"""Viewer fan-out."""

from arbwatch.broadcast.hub import BroadcastHub, Subscription


__all__ = [
    "BroadcastHub",
    "Subscription",
]
