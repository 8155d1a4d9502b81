"""Main FastAPI application - realtime chat server with history endpoint"""
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, WebSocket
from fastapi.responses import JSONResponse
import uvicorn

from ai.agent import MockedAIAgent
from auth.tokens import AuthenticationError, TokenVerifier, extract_bearer_token
from config import Settings, get_settings
from database.chat_database import ChatDatabase, PersistenceError
from domain.models import parse_timestamp
from events.consumer import AIEventConsumer
from events.publisher import EventPublisher
from hub.chat_hub import ChatHub
from hub.connection_manager import ConnectionRegistry
from hub.handler import handle_websocket_connection

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application with its own database, registry and hub"""
    settings = settings or get_settings()

    db = ChatDatabase(settings.DB_PATH)
    registry = ConnectionRegistry()
    verifier = TokenVerifier(settings.JWT_SECRET, settings.JWT_ALGORITHM, settings.JWT_EXPIRE_MINUTES)
    event_queue: asyncio.Queue[dict] = asyncio.Queue()
    publisher = EventPublisher(event_queue)
    hub = ChatHub(
        db,
        registry,
        publisher=publisher if settings.AI_ENABLED else None,
        ai_assistant_id=settings.AI_ASSISTANT_ID,
        max_message_length=settings.MAX_MESSAGE_LENGTH,
    )
    ai_agent = MockedAIAgent(publisher, role=settings.AI_ROLE)
    consumer = AIEventConsumer(event_queue, hub, ai_agent, settings.AI_ASSISTANT_ID)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open storage and start the assistant consumer; undo both on shutdown"""
        await db.init()

        consumer_task: asyncio.Task | None = None
        if settings.AI_ENABLED:
            consumer_task = asyncio.create_task(consumer.consume())
            logger.info("AI event consumer started")

        yield

        if consumer_task is not None:
            consumer_task.cancel()
            try:
                await consumer_task
            except asyncio.CancelledError:
                pass
        await db.close()
        logger.info("Application shutdown complete")

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.registry = registry
    app.state.verifier = verifier
    app.state.hub = hub
    app.state.publisher = publisher
    app.state.ai_agent = ai_agent

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "connections": registry.get_connection_count()}

    @app.get("/api/chat/history")
    async def get_chat_history(
        receiverId: str | None = None,
        limit: str | None = None,
        before: str | None = None,
        authorization: str | None = Header(default=None),
    ):
        """Page of the conversation with ``receiverId``, oldest first"""
        token = extract_bearer_token(authorization)
        if token is None:
            return _error(401, "Unauthorized - No token provided")
        try:
            user_id = verifier.verify(token)
        except AuthenticationError:
            return _error(401, "Unauthorized - Invalid token")

        if not receiverId:
            return _error(400, "Receiver ID is required")

        page_size = settings.DEFAULT_HISTORY_LIMIT
        if limit is not None:
            try:
                page_size = int(limit)
            except ValueError:
                return _error(400, "limit must be an integer")
            if page_size <= 0:
                return _error(400, "limit must be positive")
        page_size = min(page_size, settings.MAX_HISTORY_LIMIT)

        before_ts: str | None = None
        if before:
            try:
                before_ts = parse_timestamp(before)
            except ValueError:
                return _error(400, "before must be an ISO-8601 timestamp")

        try:
            messages = await db.get_conversation_history(user_id, receiverId, page_size, before_ts)
        except PersistenceError:
            logger.exception("Get chat history error")
            return _error(500, "Internal server error")

        return [message.to_dict() for message in messages]

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        """WebSocket endpoint that delegates to handler"""
        await handle_websocket_connection(websocket, hub, verifier)

    return app


app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
