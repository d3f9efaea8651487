"""Viewer-facing HTTP and WebSocket server."""

from arbwatch.dashboard.server import WebSocketViewer, create_app


__all__ = [
    "WebSocketViewer",
    "create_app",
]
