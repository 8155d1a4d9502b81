"""JSON frame codec shared by the chat server and client

Client -> Server:
    {"type": "chat", "receiverId", "content", "senderType"}
    {"type": "typing", "receiverId", "isTyping"}

Server -> Client:
    {"type": "connection", "status": "connected", "userId"}
    {"type": "chat", "message": {...}, "status"?: "sent"}
    {"type": "typing", "userId", "isTyping"}
    {"type": "error", "message"}
"""
import json
from dataclasses import dataclass

from .constants import (
    FRAME_TYPE_CHAT,
    FRAME_TYPE_TYPING,
    FRAME_TYPE_ERROR,
    FRAME_TYPE_CONNECTION,
    SENDER_TYPE_USER,
    SENDER_TYPES,
    STATUS_CONNECTED,
    MAX_MESSAGE_LENGTH,
    SenderType,
)
from .models import Message


class FrameError(Exception):
    """Raised when a frame cannot be decoded or fails validation"""


@dataclass(frozen=True)
class ChatRequest:
    """Validated outbound chat frame as received by the server"""
    receiver_id: str
    content: str
    sender_type: SenderType = SENDER_TYPE_USER


@dataclass(frozen=True)
class TypingRequest:
    """Validated typing frame as received by the server"""
    receiver_id: str
    is_typing: bool


def encode_frame(frame: dict) -> str:
    return json.dumps(frame)


def decode_frame(raw: str | bytes) -> dict:
    """Decode one frame and check it carries a string ``type`` discriminator"""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise FrameError("Invalid JSON format") from e
    if not isinstance(data, dict):
        raise FrameError("Frame must be a JSON object")
    if not isinstance(data.get("type"), str):
        raise FrameError("Frame type is required")
    return data


def _require_receiver(data: dict) -> str:
    receiver_id = data.get("receiverId")
    if not isinstance(receiver_id, str) or not receiver_id.strip():
        raise FrameError("Receiver ID is required")
    return receiver_id.strip()


def parse_chat_request(data: dict, max_length: int = MAX_MESSAGE_LENGTH) -> ChatRequest:
    receiver_id = _require_receiver(data)

    content = data.get("content")
    if not isinstance(content, str) or not content.strip():
        raise FrameError("Message content is required")
    content = content.strip()
    if len(content) > max_length:
        raise FrameError(f"Message content exceeds {max_length} characters")

    sender_type = data.get("senderType") or SENDER_TYPE_USER
    if sender_type not in SENDER_TYPES:
        raise FrameError(f"Unknown sender type: {sender_type}")

    return ChatRequest(receiver_id=receiver_id, content=content, sender_type=sender_type)


def parse_typing_request(data: dict) -> TypingRequest:
    receiver_id = _require_receiver(data)
    is_typing = data.get("isTyping")
    if not isinstance(is_typing, bool):
        raise FrameError("isTyping must be a boolean")
    return TypingRequest(receiver_id=receiver_id, is_typing=is_typing)


# Server -> Client builders

def connection_frame(user_id: str) -> dict:
    return {"type": FRAME_TYPE_CONNECTION, "status": STATUS_CONNECTED, "userId": user_id}


def chat_frame(message: Message, status: str | None = None) -> dict:
    frame: dict = {"type": FRAME_TYPE_CHAT, "message": message.to_dict()}
    if status is not None:
        frame["status"] = status
    return frame


def typing_frame(user_id: str, is_typing: bool) -> dict:
    return {"type": FRAME_TYPE_TYPING, "userId": user_id, "isTyping": is_typing}


def error_frame(text: str) -> dict:
    return {"type": FRAME_TYPE_ERROR, "message": text}


# Client -> Server builders

def outbound_chat_frame(receiver_id: str, content: str, sender_type: SenderType = SENDER_TYPE_USER) -> dict:
    return {
        "type": FRAME_TYPE_CHAT,
        "receiverId": receiver_id,
        "content": content,
        "senderType": sender_type,
    }


def outbound_typing_frame(receiver_id: str, is_typing: bool) -> dict:
    return {"type": FRAME_TYPE_TYPING, "receiverId": receiver_id, "isTyping": is_typing}
