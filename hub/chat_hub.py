"""Server-side message routing: persist chat frames, fan out to recipients, relay typing"""
import logging

from fastapi import WebSocket

from database.chat_database import ChatDatabase, PersistenceError
from domain.constants import (
    FRAME_TYPE_CHAT,
    FRAME_TYPE_TYPING,
    STATUS_SENT,
    MAX_MESSAGE_LENGTH,
    ERROR_PROCESS_FAILED,
    SenderType,
)
from domain.frames import (
    FrameError,
    ChatRequest,
    TypingRequest,
    decode_frame,
    encode_frame,
    parse_chat_request,
    parse_typing_request,
    chat_frame,
    typing_frame,
    error_frame,
)
from domain.models import Message, AIRequestEvent
from events.publisher import EventPublisher
from hub.connection_manager import ConnectionRegistry

logger = logging.getLogger(__name__)


class ChatHub:
    """Handles inbound frames from authenticated connections

    The registry is passed in rather than shared globally so independent hubs
    can coexist (one per application instance or test).
    """

    def __init__(
        self,
        db: ChatDatabase,
        registry: ConnectionRegistry,
        publisher: EventPublisher | None = None,
        ai_assistant_id: str | None = None,
        max_message_length: int = MAX_MESSAGE_LENGTH,
    ) -> None:
        self.db = db
        self.registry = registry
        self.publisher = publisher
        self.ai_assistant_id = ai_assistant_id
        self.max_message_length = max_message_length

    async def handle_frame(self, user_id: str, websocket: WebSocket, raw: str) -> None:
        """Decode one inbound frame and dispatch it by type

        Malformed frames and persistence failures are answered with an error
        frame on the originating connection; the connection stays open.
        """
        try:
            data = decode_frame(raw)
            frame_type = data["type"]

            if frame_type == FRAME_TYPE_CHAT:
                await self.handle_chat(user_id, websocket, parse_chat_request(data, self.max_message_length))
            elif frame_type == FRAME_TYPE_TYPING:
                await self.handle_typing(user_id, parse_typing_request(data))
            else:
                logger.warning("Unknown frame type from %s: %s", user_id, frame_type)
        except FrameError as e:
            logger.warning("Rejected frame from %s: %s", user_id, e)
            await self._send_error(websocket, str(e))

    async def handle_chat(self, sender_id: str, websocket: WebSocket, request: ChatRequest) -> None:
        """Persist a chat message, push it to the receiver if online and confirm to the sender"""
        try:
            message = await self.db.save_message(sender_id, request.receiver_id, request.content, request.sender_type)
        except PersistenceError:
            logger.exception("Error persisting message from %s", sender_id)
            await self._send_error(websocket, ERROR_PROCESS_FAILED)
            return

        await self.registry.send_to(message.receiver_id, chat_frame(message))
        # Confirmation goes out whether or not the receiver was reachable
        await self.registry.send_to(sender_id, chat_frame(message, status=STATUS_SENT))

        if self.publisher is not None and self.ai_assistant_id and message.receiver_id == self.ai_assistant_id:
            await self.publisher.publish(AIRequestEvent(user_id=sender_id, text=message.content))

    async def handle_typing(self, sender_id: str, request: TypingRequest) -> None:
        """Relay a typing signal to the receiver if online; nothing is stored or confirmed"""
        await self.registry.send_to(request.receiver_id, typing_frame(sender_id, request.is_typing))

    async def deliver(self, sender_id: str, receiver_id: str, content: str, sender_type: SenderType) -> Message:
        """Persist a server-originated message and push it to the receiver if online

        Used for messages with no live sender connection, such as assistant replies.

        Raises:
            PersistenceError: if the message cannot be stored
        """
        message = await self.db.save_message(sender_id, receiver_id, content, sender_type)
        await self.registry.send_to(receiver_id, chat_frame(message))
        return message

    async def _send_error(self, websocket: WebSocket, text: str) -> None:
        try:
            await websocket.send_text(encode_frame(error_frame(text)))
        except Exception as e:
            logger.warning("Error sending error frame: %s", e)
