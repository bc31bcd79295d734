import json
import logging
from datetime import datetime
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from devspace.services.realtime import manager, ANALYTICS_ROOM

logger = logging.getLogger(__name__)

router = APIRouter()


async def handle_client_event(client_id: str, message: dict):
    """Relay a client event to the other connected clients"""
    event = message.get("event")
    data = message.get("data")

    if event == "new_message":
        await manager.emit("message_received", data, exclude=client_id)
    elif event == "page_view":
        update = {"type": "page_view", "timestamp": datetime.utcnow().isoformat()}
        if isinstance(data, dict):
            update.update(data)
        await manager.emit("analytics_update", update, room=ANALYTICS_ROOM, exclude=client_id)
    else:
        logger.debug("Ignoring websocket event %r from %s", event, client_id)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    client_id = await manager.connect(websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                logger.debug("Dropping malformed websocket frame from %s", client_id)
                continue
            if isinstance(message, dict):
                await handle_client_event(client_id, message)
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(client_id)
