"""Pytest configuration and shared fixtures for all tests"""
import pytest
import asyncio
from unittest.mock import AsyncMock

from websockets.datastructures import Headers
from websockets.exceptions import InvalidStatus
from websockets.http11 import Response

from auth.tokens import TokenVerifier
from config import Settings
from database.chat_database import ChatDatabase
from events.publisher import EventPublisher
from hub.chat_hub import ChatHub
from hub.connection_manager import ConnectionRegistry

TEST_SECRET = "test-secret"
AI_ASSISTANT_ID = "ai-assistant"


@pytest.fixture
async def event_queue():
    """Create a new event queue for each test"""
    return asyncio.Queue()


@pytest.fixture
async def in_memory_db():
    """Create an in-memory SQLite database for testing"""
    db = ChatDatabase(":memory:")
    await db.init()
    yield db
    await db.close()


@pytest.fixture
def registry():
    """Create a ConnectionRegistry instance for testing"""
    return ConnectionRegistry()


@pytest.fixture
async def event_publisher(event_queue):
    """Create an EventPublisher instance for testing"""
    return EventPublisher(event_queue)


@pytest.fixture
async def hub(in_memory_db, registry, event_publisher):
    """Create a ChatHub backed by the in-memory database"""
    return ChatHub(in_memory_db, registry, publisher=event_publisher, ai_assistant_id=AI_ASSISTANT_ID)


@pytest.fixture
def verifier():
    """Create a TokenVerifier with the test secret"""
    return TokenVerifier(TEST_SECRET)


@pytest.fixture
def test_settings():
    """Settings for an isolated app instance (in-memory storage, fast AI replies)"""
    return Settings(
        DB_PATH=":memory:",
        JWT_SECRET=TEST_SECRET,
        AI_ASSISTANT_ID=AI_ASSISTANT_ID,
        _env_file=None,
    )


@pytest.fixture
def mock_websocket():
    """Create a mock WebSocket for testing"""
    ws = AsyncMock()
    ws.accept = AsyncMock()
    ws.send_text = AsyncMock()
    ws.close = AsyncMock()
    return ws


class _Closed:
    """Inbox marker: the transport closed with ``code``"""

    def __init__(self, code: int) -> None:
        self.code = code


class FakeTransport:
    """In-memory stand-in for a client WebSocket connection"""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.close_code: int | None = None
        self._inbox: asyncio.Queue = asyncio.Queue()

    def feed(self, raw: str) -> None:
        """Deliver one inbound frame"""
        self._inbox.put_nowait(raw)

    def drop(self, code: int = 1006) -> None:
        """Simulate the server closing the connection"""
        self._inbox.put_nowait(_Closed(code))

    async def send(self, text: str) -> None:
        self.sent.append(text)

    async def close(self) -> None:
        if self.close_code is None:
            self.close_code = 1000
            self._inbox.put_nowait(_Closed(1000))

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._inbox.get()
        if isinstance(item, _Closed):
            self.close_code = item.code
            raise StopAsyncIteration
        return item


class FakeServer:
    """Transport factory recording connection attempts

    ``failures`` initial attempts raise OSError; ``reject_status`` refuses
    every handshake with that HTTP status.
    """

    def __init__(self) -> None:
        self.urls: list[str] = []
        self.transports: list[FakeTransport] = []
        self.failures = 0
        self.reject_status: int | None = None

    async def __call__(self, url: str) -> FakeTransport:
        self.urls.append(url)
        if self.failures:
            self.failures -= 1
            raise OSError("Connection refused")
        if self.reject_status is not None:
            raise InvalidStatus(Response(self.reject_status, "Forbidden", Headers()))
        transport = FakeTransport()
        self.transports.append(transport)
        return transport

    @property
    def current(self) -> FakeTransport:
        return self.transports[-1]


@pytest.fixture
def fake_server():
    """Create a FakeServer transport factory"""
    return FakeServer()


async def wait_until(predicate, timeout: float = 1.0) -> None:
    """Poll ``predicate`` until it holds or fail after ``timeout`` seconds"""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def eventually():
    """Expose wait_until to tests"""
    return wait_until
