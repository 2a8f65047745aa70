"""WebSocket manager for real-time job updates."""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from jobhub.common.logging import get_logger

logger = get_logger("ws.manager")


class ConnectionManager:
    """Manages WebSocket connections grouped by job ID."""

    def __init__(self):
        self._connections: dict[str, dict[str, WebSocket]] = {}  # job_id -> {conn_id: ws}

    async def connect(self, job_id: str, websocket: WebSocket) -> str:
        await websocket.accept()
        conn_id = uuid.uuid4().hex[:12]
        self._connections.setdefault(job_id, {})[conn_id] = websocket
        logger.info("WS connected: job=%s conn=%s (%d total)", job_id, conn_id, len(self._connections[job_id]))
        return conn_id

    def disconnect(self, job_id: str, conn_id: str):
        if job_id in self._connections:
            self._connections[job_id].pop(conn_id, None)
            if not self._connections[job_id]:
                del self._connections[job_id]
        logger.info("WS disconnected: job=%s conn=%s", job_id, conn_id)

    def _envelope(self, job_id: str, event: str, data: dict) -> str:
        return json.dumps({
            "event": event,
            "data": data,
            "job_id": job_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }, default=str)

    async def broadcast(self, job_id: str, event: str, data: dict):
        if job_id not in self._connections:
            return
        message = self._envelope(job_id, event, data)
        dead = []
        for conn_id, ws in list(self._connections[job_id].items()):
            try:
                if ws.client_state == WebSocketState.CONNECTED:
                    await ws.send_text(message)
            except Exception:
                dead.append(conn_id)
        for conn_id in dead:
            self.disconnect(job_id, conn_id)

    async def send_personal(self, job_id: str, conn_id: str, event: str, data: dict):
        ws = self._connections.get(job_id, {}).get(conn_id)
        if ws is None:
            return
        try:
            if ws.client_state == WebSocketState.CONNECTED:
                await ws.send_text(self._envelope(job_id, event, data))
        except Exception:
            self.disconnect(job_id, conn_id)

    def subscribers(self, job_id: str) -> int:
        return len(self._connections.get(job_id, {}))

    @property
    def active_connections(self) -> int:
        return sum(len(conns) for conns in self._connections.values())


# Global singleton
manager = ConnectionManager()
