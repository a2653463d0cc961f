"""
Editor sync over WebSocket.

Every open editor holds one socket. When the session's source text or
collapse set changes, each socket gets a small diagram_updated event and
the editor re-fetches GET /api/diagram.
"""

import asyncio
import json
import logging

from fastapi import WebSocket


logger = logging.getLogger(__name__)


class WebSocketManager:
    """Registry of connected editors; pushes session change events to all of them."""

    def __init__(self):
        self._editors: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        async with self._lock:
            self._editors.add(websocket)
        logger.info("Editor connected (%d open)", len(self._editors))

    async def disconnect(self, websocket: WebSocket):
        async with self._lock:
            self._editors.discard(websocket)
        logger.info("Editor disconnected (%d open)", len(self._editors))

    async def broadcast(self, event: dict):
        """Send one JSON event to every editor. Editors whose socket errors are forgotten."""
        if not self._editors:
            return

        payload = json.dumps(event)
        dead: set[WebSocket] = set()

        async with self._lock:
            for websocket in self._editors:
                try:
                    await websocket.send_text(payload)
                except Exception as e:
                    logger.warning("Dropping editor after failed send: %s", e)
                    dead.add(websocket)

            self._editors -= dead

    async def notify_diagram_updated(self, ok: bool, status: str):
        """Tell editors the tree changed; `status` is the session's status line."""
        await self.broadcast({
            "type": "diagram_updated",
            "ok": ok,
            "status": status
        })

    @property
    def connection_count(self) -> int:
        return len(self._editors)


ws_manager = WebSocketManager()
