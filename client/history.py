"""Backfill of past conversation messages over the history endpoint"""
import logging

import httpx

from domain.constants import DEFAULT_HISTORY_LIMIT, ERROR_HISTORY_FAILED
from domain.models import Message

logger = logging.getLogger(__name__)

HISTORY_PATH = "/api/chat/history"


class HistoryError(Exception):
    """Raised when a history page cannot be fetched"""


class HistoryService:
    """Fetches pages of a conversation, oldest message first

    Does not retry on failure; callers decide whether to ask again.
    """

    def __init__(self, base_url: str, token: str, client: httpx.AsyncClient | None = None, timeout: float = 10.0) -> None:
        self.token = token
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def load_history(
        self,
        receiver_id: str,
        limit: int = DEFAULT_HISTORY_LIMIT,
        before: str | None = None,
    ) -> list[Message]:
        """Fetch up to ``limit`` messages exchanged with ``receiver_id``

        Args:
            receiver_id: The other participant
            limit: Page size
            before: Only messages strictly older than this ISO-8601 timestamp

        Raises:
            HistoryError: on transport failure, a non-2xx response or an unreadable body
        """
        params: dict[str, str | int] = {"receiverId": receiver_id, "limit": limit}
        if before is not None:
            params["before"] = before

        try:
            response = await self.client.get(
                HISTORY_PATH,
                params=params,
                headers={"Authorization": f"Bearer {self.token}"},
            )
        except httpx.HTTPError as e:
            logger.warning("History request failed: %s", e)
            raise HistoryError(ERROR_HISTORY_FAILED) from e

        try:
            data = response.json()
        except ValueError as e:
            raise HistoryError(ERROR_HISTORY_FAILED) from e

        if response.is_error:
            message = data.get("error") if isinstance(data, dict) else None
            raise HistoryError(message or ERROR_HISTORY_FAILED)

        if not isinstance(data, list):
            raise HistoryError(ERROR_HISTORY_FAILED)
        try:
            return [Message.from_dict(item) for item in data]
        except (KeyError, TypeError) as e:
            raise HistoryError(ERROR_HISTORY_FAILED) from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
