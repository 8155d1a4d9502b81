"""Domain models for the chat system"""
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .constants import SenderType, EventType, SENDER_TYPE_USER, EVENT_TYPE_AI_REQUEST, EVENT_TYPE_AI_RESPONSE


def format_timestamp(value: datetime) -> str:
    """Render a datetime as a lexically sortable ISO-8601 UTC string"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: str) -> str:
    """Normalize a client-supplied ISO-8601 timestamp to the storage format

    Raises:
        ValueError: if the value is not a valid ISO-8601 timestamp
    """
    return format_timestamp(datetime.fromisoformat(value.strip()))


def utc_now() -> str:
    """Current time in the storage timestamp format"""
    return format_timestamp(datetime.now(timezone.utc))


def conversation_key(user_a: str, user_b: str) -> tuple[str, str]:
    """Derived identity of the conversation between two participants (order-independent)"""
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


@dataclass(frozen=True)
class Message:
    """A persisted chat message, immutable once stored"""
    id: str
    sender_id: str
    receiver_id: str
    content: str
    sender_type: SenderType
    timestamp: str

    def to_dict(self) -> dict:
        """Wire representation (camelCase keys)"""
        return {
            "id": self.id,
            "senderId": self.sender_id,
            "receiverId": self.receiver_id,
            "content": self.content,
            "senderType": self.sender_type,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        """Build a Message from its wire representation

        Raises:
            KeyError: if a required key is missing
        """
        return cls(
            id=str(data["id"]),
            sender_id=str(data["senderId"]),
            receiver_id=str(data["receiverId"]),
            content=str(data["content"]),
            sender_type=data.get("senderType", SENDER_TYPE_USER),
            timestamp=str(data["timestamp"]),
        )

    def conversation(self) -> tuple[str, str]:
        return conversation_key(self.sender_id, self.receiver_id)


@dataclass
class ChatState:
    """Client-side view of one conversation

    Fields:
    - messages: history followed by live messages, in arrival order
    - is_connected: whether the live connection is open
    - is_typing: whether the peer is currently typing
    - error: last error text, None once superseded by a success
    """
    messages: list[Message] = field(default_factory=list)
    is_connected: bool = False
    is_typing: bool = False
    error: str | None = None


@dataclass
class AIRequestEvent:
    """Event: a user wrote to the AI assistant"""
    type: EventType = EVENT_TYPE_AI_REQUEST
    user_id: str = ""
    text: str = ""


@dataclass
class AIResponseEvent:
    """Event: AI reply ready for delivery"""
    type: EventType = EVENT_TYPE_AI_RESPONSE
    user_id: str = ""
    text: str = ""
    original_message: str = ""
    detected_intent: str = ""
