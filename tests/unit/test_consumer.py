"""Unit tests for AIEventConsumer"""
import pytest
import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

from ai.agent import MockedAIAgent
from database.chat_database import PersistenceError
from domain.constants import EVENT_TYPE_AI_REQUEST, EVENT_TYPE_AI_RESPONSE, SENDER_TYPE_AI, ERROR_ASSISTANT_FAILED
from events.consumer import AIEventConsumer


@pytest.mark.unit
class TestAIEventConsumerInitialization:
    """Test AIEventConsumer initialization"""

    def test_consumer_initialization(self):
        queue = asyncio.Queue()
        hub = MagicMock()
        ai_agent = MagicMock()

        consumer = AIEventConsumer(queue, hub, ai_agent, "ai-assistant")

        assert consumer.queue is queue
        assert consumer.hub is hub
        assert consumer.ai_agent is ai_agent
        assert consumer.ai_assistant_id == "ai-assistant"


@pytest.mark.unit
@pytest.mark.asyncio
class TestAIEventConsumerHandleEvent:
    """Test event routing"""

    async def test_ai_request_routed_to_agent(self):
        ai_agent = MagicMock()
        ai_agent.process_request = AsyncMock()
        consumer = AIEventConsumer(asyncio.Queue(), MagicMock(), ai_agent, "ai-assistant")
        event = {"type": EVENT_TYPE_AI_REQUEST, "user_id": "u1", "text": "hi"}

        await consumer.handle_event(event)

        ai_agent.process_request.assert_called_once_with(event)

    async def test_ai_response_routed_to_delivery(self):
        consumer = AIEventConsumer(asyncio.Queue(), MagicMock(), MagicMock(), "ai-assistant")
        consumer.handle_ai_response = AsyncMock()
        event = {"type": EVENT_TYPE_AI_RESPONSE, "user_id": "u1", "text": "reply"}

        await consumer.handle_event(event)

        consumer.handle_ai_response.assert_called_once_with(event)

    async def test_unknown_event_ignored(self):
        ai_agent = MagicMock()
        ai_agent.process_request = AsyncMock()
        consumer = AIEventConsumer(asyncio.Queue(), MagicMock(), ai_agent, "ai-assistant")
        consumer.handle_ai_response = AsyncMock()

        await consumer.handle_event({"type": "unknown_type"})

        ai_agent.process_request.assert_not_called()
        consumer.handle_ai_response.assert_not_called()


@pytest.mark.unit
@pytest.mark.asyncio
class TestAIEventConsumerHandleResponse:
    """Test assistant reply delivery"""

    async def test_reply_delivered_as_ai_message(self):
        hub = MagicMock()
        hub.deliver = AsyncMock()
        consumer = AIEventConsumer(asyncio.Queue(), hub, MagicMock(), "ai-assistant")

        await consumer.handle_ai_response({"type": EVENT_TYPE_AI_RESPONSE, "user_id": "u1", "text": "Breathe."})

        hub.deliver.assert_called_once_with("ai-assistant", "u1", "Breathe.", SENDER_TYPE_AI)

    async def test_empty_reply_skipped(self):
        hub = MagicMock()
        hub.deliver = AsyncMock()
        consumer = AIEventConsumer(asyncio.Queue(), hub, MagicMock(), "ai-assistant")

        await consumer.handle_ai_response({"type": EVENT_TYPE_AI_RESPONSE, "user_id": "u1", "text": ""})

        hub.deliver.assert_not_called()

    async def test_delivery_failure_notifies_user(self):
        hub = MagicMock()
        hub.deliver = AsyncMock(side_effect=PersistenceError("locked"))
        hub.registry.send_to = AsyncMock()
        consumer = AIEventConsumer(asyncio.Queue(), hub, MagicMock(), "ai-assistant")

        await consumer.handle_ai_response({"type": EVENT_TYPE_AI_RESPONSE, "user_id": "u1", "text": "Breathe."})

        user_id, frame = hub.registry.send_to.call_args[0]
        assert user_id == "u1"
        assert frame["type"] == "error"


@pytest.mark.unit
@pytest.mark.asyncio
class TestAIEventConsumerPipeline:
    """Test the request -> reply pipeline end to end"""

    async def test_request_produces_delivered_reply(self, hub, registry, event_queue, event_publisher, in_memory_db):
        ws = AsyncMock()
        await registry.connect("u1", ws)
        agent = MockedAIAgent(event_publisher, response_delay=0)
        consumer = AIEventConsumer(event_queue, hub, agent, "ai-assistant")
        task = asyncio.create_task(consumer.consume())

        try:
            await event_publisher.publish({"type": EVENT_TYPE_AI_REQUEST, "user_id": "u1", "text": "I'm so stressed"})
            await asyncio.wait_for(event_queue.join(), timeout=2)
        finally:
            task.cancel()

        [frame] = [json.loads(call.args[0]) for call in ws.send_text.call_args_list]
        assert frame["type"] == "chat"
        assert frame["message"]["senderId"] == "ai-assistant"
        assert frame["message"]["senderType"] == "AI"
        history = await in_memory_db.get_conversation_history("u1", "ai-assistant")
        assert len(history) == 1

    async def test_consumer_survives_handler_error(self, event_queue):
        ai_agent = MagicMock()
        ai_agent.process_request = AsyncMock(side_effect=[RuntimeError("boom"), None])
        hub = MagicMock()
        hub.registry.send_to = AsyncMock()
        consumer = AIEventConsumer(event_queue, hub, ai_agent, "ai-assistant")
        task = asyncio.create_task(consumer.consume())

        try:
            await event_queue.put({"type": EVENT_TYPE_AI_REQUEST, "user_id": "u1", "text": "a"})
            await event_queue.put({"type": EVENT_TYPE_AI_REQUEST, "user_id": "u1", "text": "b"})
            await asyncio.wait_for(event_queue.join(), timeout=2)
        finally:
            task.cancel()

        assert ai_agent.process_request.call_count == 2

    async def test_agent_failure_sends_error_and_stores_nothing(
        self, hub, registry, event_queue, event_publisher, in_memory_db
    ):
        """Test that a failed assistant reply reaches the user only as an error frame"""
        ws = AsyncMock()
        await registry.connect("u1", ws)
        agent = MockedAIAgent(event_publisher, response_delay=0)
        agent.generate_reply = MagicMock(side_effect=RuntimeError("model down"))
        consumer = AIEventConsumer(event_queue, hub, agent, "ai-assistant")
        task = asyncio.create_task(consumer.consume())

        try:
            await event_publisher.publish({"type": EVENT_TYPE_AI_REQUEST, "user_id": "u1", "text": "hello"})
            await asyncio.wait_for(event_queue.join(), timeout=2)
        finally:
            task.cancel()

        [frame] = [json.loads(call.args[0]) for call in ws.send_text.call_args_list]
        assert frame == {"type": "error", "message": ERROR_ASSISTANT_FAILED}
        assert "model down" not in frame["message"]
        assert await in_memory_db.get_conversation_history("u1", "ai-assistant") == []
