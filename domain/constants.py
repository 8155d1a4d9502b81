"""Domain constants and type aliases"""
from typing import Literal

# Type aliases for frame and sender types
FrameType = Literal["chat", "typing", "error", "connection"]
SenderType = Literal["USER", "THERAPIST", "AI"]
EventType = Literal["ai_request", "ai_response"]
AIRole = Literal["therapist", "coach", "emergency"]

# Frame type constants
FRAME_TYPE_CHAT: FrameType = "chat"
FRAME_TYPE_TYPING: FrameType = "typing"
FRAME_TYPE_ERROR: FrameType = "error"
FRAME_TYPE_CONNECTION: FrameType = "connection"

# Sender type constants
SENDER_TYPE_USER: SenderType = "USER"
SENDER_TYPE_THERAPIST: SenderType = "THERAPIST"
SENDER_TYPE_AI: SenderType = "AI"
SENDER_TYPES: tuple[str, ...] = (SENDER_TYPE_USER, SENDER_TYPE_THERAPIST, SENDER_TYPE_AI)

# Frame status markers
STATUS_CONNECTED = "connected"
STATUS_SENT = "sent"

# Event type constants
EVENT_TYPE_AI_REQUEST: EventType = "ai_request"
EVENT_TYPE_AI_RESPONSE: EventType = "ai_response"

# WebSocket close codes
CLOSE_POLICY_VIOLATION = 1008
CLOSE_INTERNAL_ERROR = 1011

# Protocol defaults
RECONNECT_DELAY_SECONDS = 5.0
TYPING_TIMEOUT_SECONDS = 3.0
DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 200
MAX_MESSAGE_LENGTH = 1000

# User-facing error texts
ERROR_NOT_CONNECTED = "Not connected to chat server"
ERROR_CONNECT_FAILED = "Failed to connect to chat server"
ERROR_AUTH_REQUIRED = "Authentication required"
ERROR_PROCESS_FAILED = "Failed to process message"
ERROR_SEND_FAILED = "Failed to send message"
ERROR_HISTORY_FAILED = "Failed to load chat history"
ERROR_ASSISTANT_FAILED = "Assistant could not reply, please try again"
ERROR_ASSISTANT_DELIVERY = "Failed to deliver assistant reply"
