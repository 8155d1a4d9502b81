#!/usr/bin/env python3
"""Manual smoke test: chat with the AI assistant through a running server"""

import asyncio
import sys

from auth.tokens import TokenVerifier
from client.session import ChatSession
from config import get_settings


def print_state(state) -> None:
    status = "connected" if state.is_connected else "connecting"
    print(f"[{status}] messages={len(state.messages)} typing={state.is_typing} error={state.error}")


async def chat_with_assistant(user_id: str, text: str) -> None:
    """Open a session with the assistant, send one message and print what arrives"""
    settings = get_settings()
    token = TokenVerifier(settings.JWT_SECRET, settings.JWT_ALGORITHM).create_access_token(user_id)

    async with ChatSession.from_settings(settings, settings.AI_ASSISTANT_ID, token, on_change=print_state) as chat:
        # Wait for the connection to open
        for _ in range(50):
            if chat.is_connected:
                break
            await asyncio.sleep(0.1)

        await chat.send_message(text)
        await asyncio.sleep(2.0)

        for message in chat.messages:
            print(f"{message.timestamp} {message.sender_type:<9} {message.content}")


if __name__ == "__main__":
    user = sys.argv[1] if len(sys.argv) > 1 else "demo-user"
    asyncio.run(chat_with_assistant(user, "I've been feeling anxious about work"))
