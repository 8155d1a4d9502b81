"""Inbound frame dispatch and outbound frame construction for the chat client"""
import logging
from typing import Any, Callable

from client.connection import ConnectionManager, NotConnectedError
from domain.constants import (
    FRAME_TYPE_CHAT,
    FRAME_TYPE_TYPING,
    FRAME_TYPE_ERROR,
    FRAME_TYPE_CONNECTION,
    SENDER_TYPE_USER,
    ERROR_NOT_CONNECTED,
    SenderType,
)
from domain.frames import FrameError, decode_frame, outbound_chat_frame, outbound_typing_frame
from domain.models import Message

logger = logging.getLogger(__name__)


class MessageRouter:
    """Classifies inbound frames by ``type`` and hands them to the registered handlers

    Handlers:
    - on_chat(message, status): a persisted Message; status is "sent" on the sender's own copy
    - on_typing(user_id, is_typing): a peer's typing signal
    - on_error(text): an error reported by the server
    - on_connection(user_id): the server acknowledged the connection

    Unknown or malformed frames are logged and dropped.
    """

    def __init__(
        self,
        connection: ConnectionManager,
        on_chat: Callable[[Message, str | None], Any] | None = None,
        on_typing: Callable[[str, bool], Any] | None = None,
        on_error: Callable[[str], Any] | None = None,
        on_connection: Callable[[str], Any] | None = None,
    ) -> None:
        self.connection = connection
        self.on_chat = on_chat
        self.on_typing = on_typing
        self.on_error = on_error
        self.on_connection = on_connection

    def dispatch(self, raw: str | bytes) -> None:
        try:
            data = decode_frame(raw)
        except FrameError as e:
            logger.warning("Dropping malformed frame: %s", e)
            return

        frame_type = data["type"]
        try:
            if frame_type == FRAME_TYPE_CHAT:
                message = Message.from_dict(data["message"])
                if self.on_chat:
                    self.on_chat(message, data.get("status"))
            elif frame_type == FRAME_TYPE_TYPING:
                is_typing = data["isTyping"]
                if not isinstance(is_typing, bool):
                    raise TypeError("isTyping must be a boolean")
                if self.on_typing:
                    self.on_typing(str(data["userId"]), is_typing)
            elif frame_type == FRAME_TYPE_ERROR:
                if self.on_error:
                    self.on_error(str(data.get("message", "")))
            elif frame_type == FRAME_TYPE_CONNECTION:
                logger.info("Chat server acknowledged connection as %s", data.get("userId"))
                if self.on_connection:
                    self.on_connection(str(data.get("userId", "")))
            else:
                logger.warning("Ignoring frame of unknown type: %s", frame_type)
        except (KeyError, TypeError) as e:
            logger.warning("Dropping %s frame with missing or invalid fields: %s", frame_type, e)

    async def send_chat(self, receiver_id: str, content: str, sender_type: SenderType = SENDER_TYPE_USER) -> None:
        """Transmit a chat frame; nothing is queued when disconnected

        Raises:
            NotConnectedError: if the connection is not open
        """
        self._require_connected()
        await self.connection.send(outbound_chat_frame(receiver_id, content, sender_type))

    async def send_typing(self, receiver_id: str, is_typing: bool) -> None:
        """Transmit a typing frame

        Raises:
            NotConnectedError: if the connection is not open
        """
        self._require_connected()
        await self.connection.send(outbound_typing_frame(receiver_id, is_typing))

    def _require_connected(self) -> None:
        if not self.connection.is_connected:
            raise NotConnectedError(ERROR_NOT_CONNECTED)
