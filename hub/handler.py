"""WebSocket connection lifecycle: authenticate, register, pump frames, deregister"""
import logging

from fastapi import WebSocket, WebSocketDisconnect

from auth.tokens import AuthenticationError, TokenVerifier
from domain.constants import CLOSE_POLICY_VIOLATION, ERROR_AUTH_REQUIRED
from domain.frames import connection_frame, encode_frame
from hub.chat_hub import ChatHub

logger = logging.getLogger(__name__)


async def authenticate(websocket: WebSocket, verifier: TokenVerifier) -> str | None:
    """Resolve the ``token`` query parameter to a user id

    Rejects the handshake with a policy-violation close (before accept) and
    returns None when the token is missing or invalid.
    """
    token = websocket.query_params.get("token", "").strip()
    try:
        return verifier.verify(token)
    except AuthenticationError as e:
        logger.info("Rejected WebSocket connection: %s", e)
        await websocket.close(code=CLOSE_POLICY_VIOLATION, reason=ERROR_AUTH_REQUIRED)
        return None


async def handle_websocket_connection(websocket: WebSocket, hub: ChatHub, verifier: TokenVerifier) -> None:
    """Handle one chat connection authenticated by the ``token`` query parameter"""
    user_id = await authenticate(websocket, verifier)
    if user_id is None:
        return

    registry = hub.registry
    try:
        await registry.connect(user_id, websocket)
        logger.info("User %s connected. Total clients: %d", user_id, registry.get_connection_count())

        await websocket.send_text(encode_frame(connection_frame(user_id)))

        while True:
            raw = await websocket.receive_text()
            await hub.handle_frame(user_id, websocket, raw)

    except WebSocketDisconnect:
        logger.info("User %s disconnected", user_id)
    except Exception:
        logger.exception("WebSocket error for user %s", user_id)
    finally:
        registry.disconnect(user_id, websocket)
