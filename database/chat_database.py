"""Database access layer for chat history"""
import asyncio
import logging
import uuid

import aiosqlite

from domain.constants import DEFAULT_HISTORY_LIMIT, SenderType
from domain.models import Message, conversation_key, utc_now

logger = logging.getLogger(__name__)

# Database path
DB_PATH = "chat_history.db"


class PersistenceError(Exception):
    """Raised when a message cannot be written to or read from storage"""


class ChatDatabase:
    """Append-only SQLite message log keyed by conversation"""

    def __init__(self, db_path: str = DB_PATH) -> None:
        self.db_path = db_path
        self.conn: aiosqlite.Connection | None = None
        # Serializes timestamp assignment so timestamps stay non-decreasing per conversation
        self._write_lock = asyncio.Lock()

    async def init(self) -> None:
        """Open the database and create tables"""
        self.conn = await aiosqlite.connect(self.db_path)
        assert self.conn is not None

        # seq is the insertion order, used to break timestamp ties.
        # (participant_a, participant_b) is the sorted participant pair.
        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS messages (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                sender_id TEXT NOT NULL,
                receiver_id TEXT NOT NULL,
                participant_a TEXT NOT NULL,
                participant_b TEXT NOT NULL,
                content TEXT NOT NULL,
                sender_type TEXT NOT NULL DEFAULT 'USER',
                timestamp TEXT NOT NULL
            )
        """)

        await self.conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_messages_conversation
            ON messages(participant_a, participant_b, timestamp)
        """)

        await self.conn.commit()
        logger.info("Database initialized at %s", self.db_path)

    async def close(self) -> None:
        """Close database connection"""
        if self.conn:
            await self.conn.close()
            self.conn = None

    async def save_message(self, sender_id: str, receiver_id: str, content: str, sender_type: SenderType) -> Message:
        """Persist a message, assigning its id and timestamp

        Raises:
            PersistenceError: if the write fails
        """
        assert self.conn is not None
        participant_a, participant_b = conversation_key(sender_id, receiver_id)

        async with self._write_lock:
            try:
                cursor = await self.conn.execute(
                    "SELECT MAX(timestamp) FROM messages WHERE participant_a = ? AND participant_b = ?",
                    (participant_a, participant_b)
                )
                row = await cursor.fetchone()
                now = utc_now()
                # ISO-8601 UTC strings in one fixed format compare chronologically
                timestamp = max(now, row[0]) if row and row[0] else now

                message = Message(
                    id=str(uuid.uuid4()),
                    sender_id=sender_id,
                    receiver_id=receiver_id,
                    content=content,
                    sender_type=sender_type,
                    timestamp=timestamp,
                )
                await self.conn.execute(
                    "INSERT INTO messages (id, sender_id, receiver_id, participant_a, participant_b, content, sender_type, timestamp) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (message.id, sender_id, receiver_id, participant_a, participant_b, content, sender_type, timestamp)
                )
                await self.conn.commit()
            except aiosqlite.Error as e:
                raise PersistenceError(f"Failed to save message: {e}") from e

        return message

    async def get_conversation_history(
        self,
        user_id: str,
        peer_id: str,
        limit: int = DEFAULT_HISTORY_LIMIT,
        before: str | None = None,
    ) -> list[Message]:
        """Get the latest ``limit`` messages between two users, oldest first

        Args:
            user_id: One participant
            peer_id: The other participant
            limit: Maximum number of messages to return
            before: Only messages with a timestamp strictly earlier than this (storage format)

        Raises:
            PersistenceError: if the query fails
        """
        assert self.conn is not None
        if limit <= 0:
            return []

        participant_a, participant_b = conversation_key(user_id, peer_id)
        query = (
            "SELECT id, sender_id, receiver_id, content, sender_type, timestamp FROM messages "
            "WHERE participant_a = ? AND participant_b = ?"
        )
        params: list = [participant_a, participant_b]
        if before is not None:
            query += " AND timestamp < ?"
            params.append(before)
        query += " ORDER BY timestamp DESC, seq DESC LIMIT ?"
        params.append(limit)

        try:
            cursor = await self.conn.execute(query, params)
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to load history: {e}") from e

        messages = [
            Message(
                id=row[0],
                sender_id=row[1],
                receiver_id=row[2],
                content=row[3],
                sender_type=row[4],
                timestamp=row[5],
            )
            for row in rows
        ]
        # Newest-first from the query; callers get oldest-first
        messages.reverse()
        return messages
