"""FastAPI server exposing the network layout to renderers."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field, ValidationError

from netmap.config.settings import LayoutSettings, get_settings
from netmap.core.position_store import JsonFileBackend, PositionBackend, PositionStore
from netmap.dashboard.graph_converter import CytoscapeConverter
from netmap.layout.orchestrator import (
    LayoutError,
    LayoutOrchestrator,
    PinnedNodeError,
    UnknownNodeError,
)
from netmap.models.layout_metadata import NodePosition
from netmap.models.network import NetworkPayload

logger = logging.getLogger(__name__)


class LoadRequest(NetworkPayload):
    self_name: str = ""


class DragStart(BaseModel):
    node_id: str


class DragMove(BaseModel):
    node_id: str
    x: float = Field(..., allow_inf_nan=False)
    y: float = Field(..., allow_inf_nan=False)


class DragEnd(BaseModel):
    node_id: str
    x: Optional[float] = Field(default=None, allow_inf_nan=False)
    y: Optional[float] = Field(default=None, allow_inf_nan=False)

    def final_position(self) -> Optional[NodePosition]:
        if self.x is None or self.y is None:
            return None
        return NodePosition(x=self.x, y=self.y)


class SessionRegistry:
    """One orchestrator per user id, sharing a storage backend."""

    def __init__(self, settings: LayoutSettings, backend: PositionBackend):
        self.settings = settings
        self.backend = backend
        self._sessions: Dict[str, LayoutOrchestrator] = {}

    def get(self, user_id: str) -> Optional[LayoutOrchestrator]:
        return self._sessions.get(user_id)

    def require(self, user_id: str) -> LayoutOrchestrator:
        orchestrator = self._sessions.get(user_id)
        if orchestrator is None or not orchestrator.loaded:
            raise HTTPException(status_code=404, detail=f"No layout loaded for user {user_id}")
        return orchestrator

    def get_or_create(self, user_id: str, self_name: str = "") -> LayoutOrchestrator:
        orchestrator = self._sessions.get(user_id)
        if orchestrator is None:
            store = PositionStore(self.backend, user_id, self.settings.self_node_id)
            orchestrator = LayoutOrchestrator(store, self.settings, self_name)
            self._sessions[user_id] = orchestrator
            logger.debug(f"Created layout session for user {user_id}")
        elif self_name:
            orchestrator.self_name = self_name
        return orchestrator


# WebSocket connection manager
class ConnectionManager:
    def __init__(self):
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, user_id: str, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.setdefault(user_id, []).append(websocket)

    def disconnect(self, user_id: str, websocket: WebSocket):
        connections = self.active_connections.get(user_id, [])
        if websocket in connections:
            connections.remove(websocket)

    async def broadcast(self, user_id: str, message: dict):
        """Send a message to every open connection of one user."""
        for connection in list(self.active_connections.get(user_id, [])):
            try:
                await connection.send_json(message)
            except (RuntimeError, WebSocketDisconnect):
                # Connection is closed, remove it
                self.disconnect(user_id, connection)


def create_app(
    settings: Optional[LayoutSettings] = None,
    backend: Optional[PositionBackend] = None,
) -> FastAPI:
    """Build the layout API.

    Args:
        settings: Layout tunables (defaults to environment settings)
        backend: Position storage (defaults to JSON files in settings.storage_dir)
    """
    settings = settings or get_settings()
    backend = backend if backend is not None else JsonFileBackend(settings.storage_dir)

    app = FastAPI(title="netmap layout service")

    # Enable CORS for development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    registry = SessionRegistry(settings, backend)
    manager = ConnectionManager()
    converter = CytoscapeConverter()
    app.state.registry = registry
    app.state.connections = manager

    @app.exception_handler(UnknownNodeError)
    async def unknown_node_handler(request: Request, exc: UnknownNodeError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(PinnedNodeError)
    async def pinned_node_handler(request: Request, exc: PinnedNodeError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    async def publish(user_id: str, orchestrator: LayoutOrchestrator) -> Dict[str, Any]:
        elements = converter.snapshot_to_cytoscape(orchestrator.snapshot())
        await manager.broadcast(user_id, {"type": "layout", "elements": elements})
        return elements

    @app.get("/")
    async def root():
        """Serve the dashboard HTML."""
        html_path = Path(__file__).parent / "static" / "index.html"
        if html_path.exists():
            return HTMLResponse(content=html_path.read_text())
        return HTMLResponse(content="<h1>netmap layout service</h1>")

    @app.get("/api/style")
    async def get_style():
        """Cytoscape stylesheet for the element classes."""
        return converter.create_style(settings.node_radius)

    @app.post("/api/users/{user_id}/network")
    async def load_network(user_id: str, payload: LoadRequest):
        """Load contacts and interactions, settle the layout."""
        orchestrator = registry.get_or_create(user_id, payload.self_name)
        orchestrator.load(payload.contacts, payload.interactions)
        return await publish(user_id, orchestrator)

    @app.get("/api/users/{user_id}/network")
    async def get_network(user_id: str):
        """Current layout as Cytoscape elements."""
        orchestrator = registry.require(user_id)
        return converter.snapshot_to_cytoscape(orchestrator.snapshot())

    @app.post("/api/users/{user_id}/drag/start")
    async def drag_start(user_id: str, request: DragStart):
        orchestrator = registry.require(user_id)
        orchestrator.start_drag(request.node_id)
        return converter.snapshot_to_cytoscape(orchestrator.snapshot())

    @app.post("/api/users/{user_id}/drag/move")
    async def drag_move(user_id: str, request: DragMove):
        orchestrator = registry.require(user_id)
        orchestrator.drag(request.node_id, NodePosition(x=request.x, y=request.y))
        return await publish(user_id, orchestrator)

    @app.post("/api/users/{user_id}/drag/end")
    async def drag_end(user_id: str, request: DragEnd):
        orchestrator = registry.require(user_id)
        orchestrator.end_drag(request.node_id, request.final_position())
        return await publish(user_id, orchestrator)

    @app.post("/api/users/{user_id}/layout/reset")
    async def reset_layout(user_id: str):
        """Clear saved positions and recompute initial placements."""
        orchestrator = registry.get_or_create(user_id)
        orchestrator.reset_layout()
        return await publish(user_id, orchestrator)

    @app.websocket("/ws/{user_id}")
    async def websocket_endpoint(websocket: WebSocket, user_id: str):
        """Gesture stream: drag_start / drag_move / drag_end / ping."""
        await manager.connect(user_id, websocket)
        try:
            while True:
                try:
                    data = await websocket.receive_json()
                except json.JSONDecodeError:
                    await websocket.send_json({"type": "error", "detail": "Message is not valid JSON"})
                    continue

                if not isinstance(data, dict):
                    await websocket.send_json({"type": "error", "detail": "Message must be a JSON object"})
                    continue

                message_type = data.get("type")

                if message_type == "ping":
                    await websocket.send_json({"type": "pong"})
                    continue

                orchestrator = registry.get(user_id)
                if orchestrator is None or not orchestrator.loaded:
                    await websocket.send_json(
                        {"type": "error", "detail": f"No layout loaded for user {user_id}"}
                    )
                    continue

                try:
                    if message_type == "drag_start":
                        orchestrator.start_drag(DragStart(**data).node_id)
                        await websocket.send_json({
                            "type": "layout",
                            "elements": converter.snapshot_to_cytoscape(orchestrator.snapshot()),
                        })
                    elif message_type == "drag_move":
                        move = DragMove(**data)
                        orchestrator.drag(move.node_id, NodePosition(x=move.x, y=move.y))
                        await publish(user_id, orchestrator)
                    elif message_type == "drag_end":
                        end = DragEnd(**data)
                        orchestrator.end_drag(end.node_id, end.final_position())
                        await publish(user_id, orchestrator)
                    else:
                        await websocket.send_json(
                            {"type": "error", "detail": f"Unknown message type: {message_type}"}
                        )
                except (LayoutError, ValidationError) as e:
                    await websocket.send_json({"type": "error", "detail": str(e)})

        except WebSocketDisconnect:
            manager.disconnect(user_id, websocket)

    # Mount static files (for CSS, JS, etc.)
    static_dir = Path(__file__).parent / "static"
    if static_dir.exists():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("netmap.dashboard.server:app", host="127.0.0.1", port=8000)
