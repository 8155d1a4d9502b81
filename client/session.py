"""Per-conversation chat façade: live connection + history backfill + typing presence

Usage::

    async with ChatSession(peer_id="u2", token=token) as chat:
        await chat.send_message("hello")
        print(chat.messages, chat.is_connected, chat.is_typing, chat.error)

Failures never raise out of the public operations; they are recorded in
``error`` (last write wins) until superseded by a success or a newer error.
"""
import asyncio
import logging
from typing import Any, Callable

from websockets.exceptions import WebSocketException

from client.connection import ConnectionManager, NotConnectedError
from client.history import HistoryError, HistoryService
from client.presence import PresenceTracker
from client.router import MessageRouter
from config import Settings
from domain.constants import (
    DEFAULT_HISTORY_LIMIT,
    RECONNECT_DELAY_SECONDS,
    TYPING_TIMEOUT_SECONDS,
    SENDER_TYPE_USER,
    ERROR_NOT_CONNECTED,
    ERROR_SEND_FAILED,
    SenderType,
)
from domain.models import ChatState, Message

logger = logging.getLogger(__name__)


class ChatSession:
    """Conversation with one peer, exposed to the UI layer as a ChatState"""

    def __init__(
        self,
        peer_id: str,
        token: str,
        server_url: str = "ws://localhost:8765/ws",
        api_base_url: str = "http://localhost:8765",
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
        typing_timeout: float = TYPING_TIMEOUT_SECONDS,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        on_change: Callable[[ChatState], Any] | None = None,
        connection: ConnectionManager | None = None,
        history: HistoryService | None = None,
    ) -> None:
        self.peer_id = peer_id
        self.history_limit = history_limit
        self.on_change = on_change
        self.state = ChatState()

        self.connection = connection or ConnectionManager(server_url, token, reconnect_delay=reconnect_delay)
        self.connection.on_open = self._on_open
        self.connection.on_close = self._on_close
        self.connection.on_error = self._set_error
        self.router = MessageRouter(
            self.connection,
            on_chat=self._on_chat,
            on_typing=self._on_typing,
            on_error=self._set_error,
        )
        self.connection.on_message = self.router.dispatch
        self.presence = PresenceTracker(self.router, peer_id, timeout=typing_timeout)
        self.history = history or HistoryService(api_base_url, token)

        self._history_task: asyncio.Task | None = None
        self._opened = False
        self._closed = False

    @classmethod
    def from_settings(cls, settings: Settings, peer_id: str, token: str, **kwargs) -> "ChatSession":
        return cls(
            peer_id,
            token,
            server_url=settings.CHAT_SERVER_URL,
            api_base_url=settings.API_BASE_URL,
            reconnect_delay=settings.RECONNECT_DELAY_SECONDS,
            typing_timeout=settings.TYPING_TIMEOUT_SECONDS,
            history_limit=settings.DEFAULT_HISTORY_LIMIT,
            **kwargs,
        )

    # State accessors

    @property
    def messages(self) -> list[Message]:
        return self.state.messages

    @property
    def is_connected(self) -> bool:
        return self.state.is_connected

    @property
    def is_typing(self) -> bool:
        return self.state.is_typing

    @property
    def error(self) -> str | None:
        return self.state.error

    # Lifecycle

    async def open(self) -> None:
        """Connect and start the initial history load"""
        if self._opened:
            return
        self._opened = True
        self.connection.connect()
        self._history_task = asyncio.create_task(self.load_history())

    async def close(self) -> None:
        """Release the connection, reconnect timer, typing timer and pending history fetch"""
        if self._closed:
            return
        self._closed = True
        self.presence.cancel()

        if self._history_task is not None and not self._history_task.done():
            self._history_task.cancel()
            try:
                await self._history_task
            except asyncio.CancelledError:
                pass
        self._history_task = None

        try:
            await self.connection.close()
        finally:
            await self.history.aclose()
            self.state.is_connected = False
            self.state.is_typing = False
            self.presence.peer_is_typing = False

    async def __aenter__(self) -> "ChatSession":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Operations

    async def load_history(self, before: str | None = None) -> bool:
        """Fetch a history page; with ``before`` the older page is prepended

        Returns:
            True if the page was applied
        """
        try:
            page = await self.history.load_history(self.peer_id, self.history_limit, before)
        except HistoryError as e:
            if not self._closed:
                self._set_error(str(e))
            return False

        if self._closed:
            logger.debug("Discarding history for closed session with %s", self.peer_id)
            return False

        page_ids = {message.id for message in page}
        kept = [message for message in self.state.messages if message.id not in page_ids]
        # Initial load: live messages that beat the response stay after it.
        # Older page: everything already shown stays after it.
        self.state.messages = page + kept
        self._changed()
        return True

    async def send_message(self, content: str, sender_type: SenderType = SENDER_TYPE_USER) -> bool:
        """Send a chat message to the peer; never queued

        Returns:
            True if the frame was handed to the transport
        """
        try:
            await self.router.send_chat(self.peer_id, content, sender_type)
            return True
        except NotConnectedError:
            self._set_error(ERROR_NOT_CONNECTED)
        except (WebSocketException, OSError) as e:
            logger.warning("Failed to send message: %s", e)
            self._set_error(ERROR_SEND_FAILED)
        return False

    async def update_typing_status(self, is_typing: bool) -> None:
        try:
            await self.presence.update_typing_status(is_typing)
        except NotConnectedError:
            logger.debug("Typing update dropped while disconnected")
        except (WebSocketException, OSError) as e:
            logger.warning("Failed to send typing status: %s", e)

    # Connection and router callbacks

    def _on_open(self) -> None:
        self.state.is_connected = True
        self.state.error = None
        self._changed()

    def _on_close(self) -> None:
        self.state.is_connected = False
        self._changed()

    def _on_chat(self, message: Message, status: str | None) -> None:
        if self.peer_id not in (message.sender_id, message.receiver_id):
            return
        if any(existing.id == message.id for existing in self.state.messages):
            return
        # Appended in arrival order, never re-sorted against history
        self.state.messages = self.state.messages + [message]
        self._changed()

    def _on_typing(self, user_id: str, is_typing: bool) -> None:
        if self.presence.on_remote_typing(user_id, is_typing):
            self.state.is_typing = self.presence.peer_is_typing
            self._changed()

    def _set_error(self, text: str) -> None:
        self.state.error = text
        self._changed()

    def _changed(self) -> None:
        if self.on_change is None:
            return
        try:
            self.on_change(self.state)
        except Exception:
            logger.exception("Chat state listener failed")
