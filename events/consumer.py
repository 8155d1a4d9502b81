"""Event consuming for the AI assistant pipeline"""
import asyncio
import logging

from database.chat_database import PersistenceError
from domain.constants import (
    EVENT_TYPE_AI_REQUEST,
    EVENT_TYPE_AI_RESPONSE,
    SENDER_TYPE_AI,
    ERROR_ASSISTANT_FAILED,
    ERROR_ASSISTANT_DELIVERY,
)
from domain.frames import error_frame
from hub.chat_hub import ChatHub

logger = logging.getLogger(__name__)


class AIEventConsumer:
    """Consumes assistant events: runs the agent on requests and delivers its replies"""

    def __init__(self, queue: asyncio.Queue[dict], hub: ChatHub, ai_agent, ai_assistant_id: str) -> None:
        self.queue = queue
        self.hub = hub
        self.ai_agent = ai_agent
        self.ai_assistant_id = ai_assistant_id

    async def consume(self) -> None:
        """Continuously consume and process events"""
        while True:
            event = await self.queue.get()
            try:
                await self.handle_event(event)
            except Exception:
                logger.exception("Error handling event %s", event.get("type"))
            finally:
                self.queue.task_done()

    async def handle_event(self, event: dict) -> None:
        """Route event to appropriate handler"""
        event_type: str = event.get("type", "")

        if event_type == EVENT_TYPE_AI_REQUEST:
            await self.handle_ai_request(event)
        elif event_type == EVENT_TYPE_AI_RESPONSE:
            await self.handle_ai_response(event)
        else:
            logger.warning("Unknown event type: %s", event_type)

    async def handle_ai_request(self, event: dict) -> None:
        """Run the agent; a failure reaches the user only as an error frame"""
        user_id: str = event.get("user_id", "")
        logger.info("AI request from %s", user_id)
        try:
            await self.ai_agent.process_request(event)
        except Exception:
            logger.exception("Error processing AI request for %s", user_id)
            if user_id:
                await self.hub.registry.send_to(user_id, error_frame(ERROR_ASSISTANT_FAILED))

    async def handle_ai_response(self, event: dict) -> None:
        """Persist the assistant reply and push it to the user"""
        user_id: str = event.get("user_id", "")
        text: str = event.get("text", "")
        if not user_id or not text:
            return

        try:
            await self.hub.deliver(self.ai_assistant_id, user_id, text, SENDER_TYPE_AI)
        except PersistenceError:
            logger.exception("Error saving AI response for %s", user_id)
            await self.hub.registry.send_to(user_id, error_frame(ERROR_ASSISTANT_DELIVERY))
