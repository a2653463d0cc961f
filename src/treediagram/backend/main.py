"""
Tree Diagram Backend - FastAPI Application

This is the main entry point for the tree diagram backend.
It provides:
- REST API for the live session (set source text, toggle collapse, fetch drawing)
- A stateless parse + layout endpoint
- SVG export and validation of the current model
- WebSocket endpoint for real-time updates
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, Response
from pydantic import BaseModel, Field

from ..core import (
    LayoutConfig,
    ParseError,
    layout,
    parse,
    render,
    to_svg,
    validate_tree,
    validation_summary,
)
from .session import SourceStore, TreeSession
from .websocket_manager import ws_manager


logger = logging.getLogger(__name__)

session = TreeSession(store=SourceStore())


# --- Async change notification ---
# Bridge between sync TreeSession callbacks and async WebSocket broadcasts

_change_event: Optional[asyncio.Event] = None  # Bound to the running loop in lifespan


def on_session_change():
    """Callback for session changes - sets event for async handler."""
    if _change_event is not None:
        _change_event.set()


async def change_broadcaster(event: asyncio.Event):
    """Background task that broadcasts changes to WebSocket clients."""
    while True:
        await event.wait()
        event.clear()

        ok, message = session.status
        await ws_manager.notify_diagram_updated(ok, message)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup/shutdown tasks."""
    global _change_event
    _change_event = asyncio.Event()
    session.on_change(on_session_change)

    # Pick up where the last editing session left off
    session.restore()

    broadcaster_task = asyncio.create_task(change_broadcaster(_change_event))

    yield

    broadcaster_task.cancel()
    try:
        await broadcaster_task
    except asyncio.CancelledError:
        pass


# --- FastAPI App ---

app = FastAPI(
    title="Tree Diagram API",
    description="Backend API for the text-to-tree diagram editor",
    version="0.1.0",
    lifespan=lifespan
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Health Check ---

@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "connections": ws_manager.connection_count}


# --- Session State ---

@app.get("/api/diagram")
async def get_diagram():
    """Get the current session state."""
    return session.get_state()


class SourceRequest(BaseModel):
    text: str


@app.put("/api/source")
async def set_source(request: SourceRequest):
    """Replace the source text and re-render."""
    model = session.set_source(request.text)
    return {"success": model is not None, **session.get_state()}


@app.post("/api/nodes/{node_id:path}/toggle")
async def toggle_node(node_id: str):
    """Collapse or expand a node. Nodes without children are left alone."""
    try:
        state = session.toggle(node_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "success": state is not None,
        "node_id": node_id,
        "collapsed": state,
        "state": session.get_state()
    }


@app.get("/api/diagram/svg")
async def get_svg():
    """Export the current drawing as SVG."""
    if session.model is None:
        raise HTTPException(status_code=400, detail="No diagram to export")
    return Response(content=to_svg(session.drawing()), media_type="image/svg+xml")


@app.get("/api/diagram/validate")
async def validate_current_diagram():
    """
    Validate the current model for shapes the layout only tolerates.

    Returns a list of issues (errors, warnings, info) and a summary.
    """
    if session.model is None:
        raise HTTPException(status_code=400, detail="No diagram open")

    issues = validate_tree(session.model)
    return {
        "success": True,
        "issues": [issue.to_dict() for issue in issues],
        "summary": validation_summary(issues)
    }


# --- Stateless Parse ---

class ParseRequest(BaseModel):
    text: str
    collapsed: list[str] = Field(default_factory=list)
    config: Optional[LayoutConfig] = None


@app.post("/api/parse")
async def parse_source(request: ParseRequest):
    """Parse and lay out text without touching the session."""
    try:
        model = parse(request.text)
    except ParseError as e:
        raise HTTPException(status_code=422, detail=e.to_dict())

    collapsed = set(request.collapsed) & set(model.nodes)
    result = layout(model, collapsed, request.config)
    return {
        "success": True,
        "model": model.to_json_dict(),
        "coordinates": result.to_json_dict(),
        "drawing": render(model, collapsed, request.config).to_dict()
    }


# --- WebSocket ---

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time updates.

    Clients connect here to receive diagram_updated events.
    """
    await ws_manager.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text('{"type": "pong"}')
    except WebSocketDisconnect:
        await ws_manager.disconnect(websocket)
    except Exception as e:
        logger.warning("WebSocket error: %s", e)
        await ws_manager.disconnect(websocket)


@app.get("/")
async def index():
    """Placeholder page; editors talk to the API directly."""
    return HTMLResponse("<h1>Tree Diagram API</h1><p>PUT source text to /api/source and GET /api/diagram/svg.</p>")


# --- Run with uvicorn ---

def run(host: str = "127.0.0.1", port: int = 8765):
    import uvicorn
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run()
