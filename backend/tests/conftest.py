"""Pytest configuration and fixtures."""

import os
import tempfile
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from assistant_bridge.assistant.errors import BackendError, ThreadCreationError
from assistant_bridge.assistant.models import (
    MessageSegment,
    RunStatus,
    RunSummary,
    ThreadMessage,
)
from assistant_bridge.db.database import close_database, init_database
from assistant_bridge.db.session_store import SqliteSessionStore


class FakeBackend:
    """In-memory stand-in for AssistantBackendClient.

    Scripted responses are consumed in order; the last one repeats.
    """

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.threads: set[str] = set()
        self.active_runs: list[list[RunSummary]] = [[]]
        self.statuses: list[RunStatus] = [RunStatus.COMPLETED]
        self.messages: list[ThreadMessage] = [reply_message("Hello from the assistant")]
        self.failures: dict[str, Exception] = {}
        self._thread_counter = 0
        self._run_counter = 0

    def fail(self, operation: str, message: str = "boom") -> None:
        exc_type = ThreadCreationError if operation == "create_thread" else BackendError
        self.failures[operation] = exc_type(message, operation=operation)

    def _record(self, operation: str, *args: object) -> None:
        self.calls.append((operation, *args))
        if operation in self.failures:
            raise self.failures[operation]

    def called(self, operation: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == operation]

    @staticmethod
    def _next(script: list):
        return script.pop(0) if len(script) > 1 else script[0]

    async def create_thread(self) -> str:
        self._record("create_thread")
        self._thread_counter += 1
        thread_id = f"thread_{self._thread_counter}"
        self.threads.add(thread_id)
        return thread_id

    async def delete_thread(self, thread_id: str) -> None:
        self._record("delete_thread", thread_id)
        self.threads.discard(thread_id)

    async def list_runs(self, thread_id, statuses=None) -> list[RunSummary]:
        self._record("list_runs", thread_id, tuple(statuses or ()))
        return self._next(self.active_runs)

    async def create_message(self, thread_id: str, text: str) -> None:
        self._record("create_message", thread_id, text)

    async def create_run(self, thread_id: str, assistant_id: str) -> str:
        self._record("create_run", thread_id, assistant_id)
        self._run_counter += 1
        return f"run_{self._run_counter}"

    async def get_run(self, thread_id: str, run_id: str) -> RunStatus:
        self._record("get_run", thread_id, run_id)
        return self._next(self.statuses)

    async def list_recent_messages(self, thread_id: str, limit: int = 1) -> list[ThreadMessage]:
        self._record("list_recent_messages", thread_id, limit)
        return self.messages[:limit]

    async def close(self) -> None:
        pass


class FakeTransport:
    """Records sent messages."""

    def __init__(self) -> None:
        self.sent: list[tuple[int | str, str]] = []
        self.error: Exception | None = None

    async def send_message(self, chat_id: int | str, text: str) -> None:
        if self.error:
            raise self.error
        self.sent.append((chat_id, text))


class FakeSleep:
    """Records requested sleeps without waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def reply_message(*texts: str, message_id: str = "msg_1") -> ThreadMessage:
    """Build an assistant message made of text segments."""
    return ThreadMessage(
        id=message_id,
        role="assistant",
        segments=[MessageSegment(type="text", text=t) for t in texts],
    )


def active_run(run_id: str = "run_prev") -> RunSummary:
    return RunSummary(id=run_id, status=RunStatus.IN_PROGRESS)


@pytest.fixture(autouse=True)
async def setup_test_db():
    """Set up a test database for each test."""
    # Create a temporary database file
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    await init_database(db_path)

    yield

    # Clean up
    await close_database()
    os.unlink(db_path)


@pytest.fixture
def store() -> SqliteSessionStore:
    return SqliteSessionStore()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client."""
    from assistant_bridge.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
