"""Registry of live WebSocket connections keyed by authenticated user id"""
import json
import logging

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Maps each user id to at most one live WebSocket

    Registering a second connection for the same user replaces the first
    (last write wins). Each entry is owned by its user id, so registrations
    for different users never interfere with each other.
    """

    def __init__(self) -> None:
        self.active_connections: dict[str, WebSocket] = {}

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        """Accept the WebSocket and register it for ``user_id``"""
        await websocket.accept()
        previous = self.active_connections.get(user_id)
        if previous is not None and previous is not websocket:
            logger.info("Replacing existing connection for user %s", user_id)
        self.active_connections[user_id] = websocket

    def disconnect(self, user_id: str, websocket: WebSocket | None = None) -> None:
        """Remove the registration for ``user_id``

        When ``websocket`` is given, the entry is only removed if it still points
        at that handle, so closing a superseded connection leaves the newer one alone.
        """
        current = self.active_connections.get(user_id)
        if current is None:
            return
        if websocket is not None and current is not websocket:
            return
        del self.active_connections[user_id]

    async def send_to(self, user_id: str, message: dict) -> bool:
        """Send a frame to ``user_id`` if connected

        Returns:
            True if the frame was written, False if the user is offline or the write failed
        """
        websocket = self.active_connections.get(user_id)
        if websocket is None:
            return False
        try:
            await websocket.send_text(json.dumps(message))
            return True
        except Exception as e:
            logger.warning("Error sending frame to user %s: %s", user_id, e)
            self.disconnect(user_id, websocket)
            return False

    def get_connection_count(self) -> int:
        """Get the number of active connections"""
        return len(self.active_connections)
