from fastapi import WebSocket
from typing import Any, List
import logging

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks every open session socket so snapshots reach all of them."""

    def __init__(self):
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

    async def send_personal_message(self, message: dict[str, Any], websocket: WebSocket):
        await websocket.send_json(message)

    async def broadcast(self, message: dict[str, Any]):
        logger.debug(f"Broadcasting {message.get('type')} to {len(self.active_connections)} sessions")
        for connection in list(self.active_connections):
            try:
                await connection.send_json(message)
            except (RuntimeError, ConnectionError) as exc:
                # Socket closed between receive loops; its handler cleans up too.
                logger.info(f"Dropping session after failed send: {exc}")
                self.disconnect(connection)
