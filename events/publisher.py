"""Event publishing for the AI assistant pipeline"""
import asyncio
from dataclasses import asdict

from domain.models import AIRequestEvent, AIResponseEvent


class EventPublisher:
    """Puts assistant events on the queue as plain dicts"""

    def __init__(self, queue: asyncio.Queue[dict]) -> None:
        self.queue = queue

    async def publish(self, event: AIRequestEvent | AIResponseEvent | dict) -> None:
        """Enqueue one event; dataclass events are flattened with their field names as keys"""
        await self.queue.put(event if isinstance(event, dict) else asdict(event))
