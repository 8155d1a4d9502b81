"""Client-side chat connection: token-authenticated WebSocket with fixed-delay reconnect

One ConnectionManager owns at most one transport at a time. When the transport
fails to open or closes, it waits ``reconnect_delay`` seconds and tries again,
indefinitely, until ``close()`` is called. A handshake refused for
authentication (or a policy-violation close) stops the loop instead: a fresh
credential is needed before retrying.
"""
import asyncio
import logging
from typing import Any, Callable
from urllib.parse import urlencode

import websockets
from websockets.exceptions import ConnectionClosed, InvalidStatus, WebSocketException

from domain.constants import (
    CLOSE_POLICY_VIOLATION,
    RECONNECT_DELAY_SECONDS,
    ERROR_AUTH_REQUIRED,
    ERROR_CONNECT_FAILED,
    ERROR_NOT_CONNECTED,
)
from domain.frames import encode_frame

logger = logging.getLogger(__name__)

# HTTP statuses a server uses to refuse the handshake for missing/invalid credentials
AUTH_REJECTED_STATUSES = (401, 403)


class NotConnectedError(Exception):
    """Raised when sending while the connection is not open"""


class AuthenticationRejected(Exception):
    """The server refused the credential; reconnecting with it is pointless"""


class ConnectionManager:
    """Owns one authenticated chat connection and keeps it alive

    Callbacks (all optional, called synchronously from the connection task):
    - on_open(): the transport opened
    - on_close(): the transport closed (before any reconnect wait)
    - on_error(text): a non-fatal transport error, as user-facing text
    - on_message(raw): one inbound frame, undecoded
    """

    def __init__(
        self,
        url: str,
        token: str,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
        on_open: Callable[[], Any] | None = None,
        on_close: Callable[[], Any] | None = None,
        on_error: Callable[[str], Any] | None = None,
        on_message: Callable[[str | bytes], Any] | None = None,
        transport_factory: Callable[[str], Any] = websockets.connect,
    ) -> None:
        self.url = url
        self.token = token
        self.reconnect_delay = reconnect_delay
        self.on_open = on_open
        self.on_close = on_close
        self.on_error = on_error
        self.on_message = on_message
        self._transport_factory = transport_factory

        self.is_connected = False
        self.connect_attempts = 0
        self._websocket = None
        self._task: asyncio.Task | None = None
        self._closed = False

    @property
    def connection_url(self) -> str:
        """Endpoint URL with the bearer credential as the ``token`` query parameter"""
        separator = "&" if "?" in self.url else "?"
        return f"{self.url}{separator}{urlencode({'token': self.token})}"

    def connect(self) -> None:
        """Start the connect/reconnect loop (no-op if already running)"""
        if self._task is not None and not self._task.done():
            return
        self._closed = False
        self._task = asyncio.create_task(self._run())

    async def close(self) -> None:
        """Stop reconnecting and close the transport"""
        self._closed = True
        websocket = self._websocket
        task = self._task
        self._task = None

        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if websocket is not None:
            await websocket.close()
        self._websocket = None
        self.is_connected = False

    async def send(self, frame: dict) -> None:
        """Serialize and transmit one frame

        Raises:
            NotConnectedError: if the transport is not open
        """
        websocket = self._websocket
        if websocket is None or not self.is_connected:
            raise NotConnectedError(ERROR_NOT_CONNECTED)
        try:
            await websocket.send(encode_frame(frame))
        except ConnectionClosed as e:
            raise NotConnectedError(ERROR_NOT_CONNECTED) from e

    async def _run(self) -> None:
        while not self._closed:
            try:
                await self._connect_once()
            except AuthenticationRejected:
                logger.warning("Chat server rejected credentials; not reconnecting")
                self._notify(self.on_error, ERROR_AUTH_REQUIRED)
                return

            if self._closed:
                return
            logger.info("Reconnecting to chat server in %.1fs", self.reconnect_delay)
            await asyncio.sleep(self.reconnect_delay)

    async def _connect_once(self) -> None:
        """Open one transport and pump frames until it closes"""
        self.connect_attempts += 1
        try:
            websocket = await self._transport_factory(self.connection_url)
        except InvalidStatus as e:
            if e.response.status_code in AUTH_REJECTED_STATUSES:
                raise AuthenticationRejected() from e
            logger.warning("Chat server refused connection: %s", e)
            self._notify(self.on_error, ERROR_CONNECT_FAILED)
            return
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            logger.warning("Failed to connect to chat server: %s", e)
            self._notify(self.on_error, ERROR_CONNECT_FAILED)
            return

        self._websocket = websocket
        self.is_connected = True
        self._notify(self.on_open)

        close_code = None
        try:
            async for raw in websocket:
                self._notify(self.on_message, raw)
        except ConnectionClosed as e:
            logger.warning("Chat connection lost: %s", e)
            self._notify(self.on_error, ERROR_CONNECT_FAILED)
        finally:
            close_code = getattr(websocket, "close_code", None)
            self.is_connected = False
            self._websocket = None
            if not self._closed:
                await websocket.close()
                self._notify(self.on_close)

        if close_code == CLOSE_POLICY_VIOLATION:
            raise AuthenticationRejected()

    def _notify(self, callback: Callable | None, *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("Connection callback failed")
