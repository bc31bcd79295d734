import logging
from typing import Dict, Optional, Set
from uuid import uuid4

from fastapi import WebSocket
from fastapi.websockets import WebSocketState

logger = logging.getLogger(__name__)

ANALYTICS_ROOM = "analytics"


class ConnectionManager:
    """Best-effort pub/sub over WebSocket connections, grouped into rooms"""

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}
        self.rooms: Dict[str, Set[str]] = {}

    async def connect(self, websocket: WebSocket) -> str:
        client_id = uuid4().hex
        self.active_connections[client_id] = websocket
        self.join(client_id, ANALYTICS_ROOM)
        await websocket.accept()
        logger.info("WebSocket client connected: %s", client_id)
        return client_id

    def disconnect(self, client_id: str):
        self.active_connections.pop(client_id, None)
        for members in self.rooms.values():
            members.discard(client_id)
        logger.info("WebSocket client disconnected: %s", client_id)

    def join(self, client_id: str, room: str):
        self.rooms.setdefault(room, set()).add(client_id)

    async def _send(self, client_id: str, payload: dict):
        websocket = self.active_connections.get(client_id)
        if websocket is None:
            return
        try:
            if websocket.application_state == WebSocketState.CONNECTED:
                await websocket.send_json(payload)
        except Exception as e:
            logger.warning("WebSocket send to %s failed: %s", client_id, e)
            self.disconnect(client_id)

    async def emit(self, event: str, data, room: Optional[str] = None, exclude: Optional[str] = None):
        """Send {"event", "data"} to every client (or every room member) except `exclude`"""
        targets = self.rooms.get(room, set()) if room else set(self.active_connections)
        payload = {"event": event, "data": data}
        for client_id in list(targets):
            if client_id != exclude:
                await self._send(client_id, payload)


manager = ConnectionManager()
