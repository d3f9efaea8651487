"""
FastAPI server for dashboard viewers.

Serves the viewer WebSocket, the bot's POST /update push endpoint, and
read-only state endpoints.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import orjson
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from arbwatch import __version__
from arbwatch.config.settings import Settings, get_settings
from arbwatch.core.engine import MonitorEngine


logger = logging.getLogger(__name__)


class WebSocketViewer:
    """Viewer adapter that writes {"type", "data"} envelopes to a WebSocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket

    async def send(self, event: str, payload: Any) -> None:
        message = orjson.dumps({"type": event, "data": payload}).decode()
        await self._websocket.send_text(message)


def get_engine(request: Request) -> MonitorEngine:
    return request.app.state.engine  # type: ignore[no-any-return]


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the viewer-facing application.

    Args:
        settings: Application settings (loaded from the environment if omitted).
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        engine = MonitorEngine(settings)
        app.state.engine = engine
        await engine.start()
        try:
            yield
        finally:
            await engine.stop()

    app = FastAPI(title="Bot Monitor", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.post("/update")(post_update)
    app.get("/api/state")(get_state)
    app.get("/api/stats")(get_stats)
    app.websocket("/ws")(websocket_endpoint)
    return app


async def post_update(request: Request) -> JSONResponse:
    """Republish an event pushed by the bot."""
    try:
        body = orjson.loads(await request.body())
    except orjson.JSONDecodeError:
        body = None

    event_name = body.get("eventName") if isinstance(body, dict) else None
    data = body.get("data") if isinstance(body, dict) else None

    # Empty objects and arrays count as data; null and falsy scalars do not
    missing_data = data is None or (isinstance(data, (bool, int, float, str)) and not data)
    if not event_name or not isinstance(event_name, str) or missing_data:
        return JSONResponse(status_code=400, content={"error": "Missing eventName or data"})

    get_engine(request).hub.publish(event_name, data)
    return JSONResponse(content={"success": True})


async def get_state(request: Request) -> dict[str, Any]:
    """Current aggregate state."""
    return get_engine(request).state.snapshot()


async def get_stats(request: Request) -> dict[str, Any]:
    """Monitor counters and connection counts."""
    return get_engine(request).stats()


async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()

    hub = websocket.app.state.engine.hub
    viewer = WebSocketViewer(websocket)
    hub.register(viewer)

    try:
        while True:
            # Inbound frames carry nothing; reading detects the disconnect
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    except WebSocketDisconnect:
        pass
    finally:
        hub.unregister(viewer)
