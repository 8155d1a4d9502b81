"""Typing presence for one conversation"""
import asyncio
import logging

from client.connection import NotConnectedError
from client.router import MessageRouter
from domain.constants import TYPING_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class PresenceTracker:
    """Sends our typing signal to the peer and tracks whether the peer is typing

    Outbound: every ``True`` (re)arms an expiry task that sends a synthetic
    ``False`` after ``timeout`` seconds of silence, so a burst of keystrokes
    yields exactly one trailing ``False``. Inbound: the peer flag follows
    whatever the peer transmits; there is no local timer on that side.
    """

    def __init__(self, router: MessageRouter, peer_id: str, timeout: float = TYPING_TIMEOUT_SECONDS) -> None:
        self.router = router
        self.peer_id = peer_id
        self.timeout = timeout
        self.peer_is_typing = False
        self._expiry_task: asyncio.Task | None = None

    @property
    def expiry_pending(self) -> bool:
        return self._expiry_task is not None and not self._expiry_task.done()

    async def update_typing_status(self, is_typing: bool) -> None:
        """Send our typing state to the peer; silently skipped while disconnected"""
        if not self.router.connection.is_connected:
            return

        self.cancel()
        await self.router.send_typing(self.peer_id, is_typing)

        if is_typing:
            self._expiry_task = asyncio.create_task(self._expire())

    def on_remote_typing(self, user_id: str, is_typing: bool) -> bool:
        """Apply an inbound typing signal

        Returns:
            True if the peer flag changed
        """
        if user_id != self.peer_id:
            return False
        changed = self.peer_is_typing != is_typing
        self.peer_is_typing = is_typing
        return changed

    def cancel(self) -> None:
        """Cancel a pending automatic ``False``"""
        if self._expiry_task is not None and not self._expiry_task.done():
            self._expiry_task.cancel()
        self._expiry_task = None

    async def _expire(self) -> None:
        await asyncio.sleep(self.timeout)
        self._expiry_task = None
        try:
            await self.router.send_typing(self.peer_id, False)
        except NotConnectedError:
            logger.debug("Connection closed before typing expiry for %s", self.peer_id)
