"""Tests for SessionHandler."""

import asyncio

import pytest
from conftest import active_run, reply_message

from assistant_bridge.assistant.handler import (
    THREAD_FAILED_REPLY,
    UNEXPECTED_ERROR_REPLY,
    ChatLocks,
    SessionHandler,
)
from assistant_bridge.assistant.models import RunStatus
from assistant_bridge.assistant.runs import WAIT_FAILED_REPLY, RunCoordinator
from assistant_bridge.assistant.threads import ThreadManager
from assistant_bridge.telegram.models import Update


async def wait_until(predicate, timeout: float = 2.0) -> None:
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.01)


@pytest.fixture
def handler(store, backend, transport, fake_sleep) -> SessionHandler:
    threads = ThreadManager(store, backend)
    runs = RunCoordinator(backend, "asst_123", sleep=fake_sleep)
    return SessionHandler(threads, runs, transport)


class TestHandle:
    """Tests for SessionHandler.handle."""

    async def test_conversation_then_restart(self, handler, store, backend, transport):
        """Test a first message creates a thread and a restart removes it."""
        backend.statuses = [RunStatus.QUEUED, RunStatus.COMPLETED]
        backend.messages = [reply_message("Hi there!")]

        reply = await handler.handle(42, "hello")

        assert reply == "Hi there!"
        assert transport.sent == [(42, "Hi there!")]
        assert await store.get("42") == "thread_1"
        assert backend.called("create_message") == [("create_message", "thread_1", "hello")]

        reply = await handler.handle(42, "/restart")

        assert reply is None
        assert transport.sent == [(42, "Hi there!")]
        assert backend.called("delete_thread") == [("delete_thread", "thread_1")]
        assert "thread_1" not in backend.threads
        assert await store.get("42") is None

    async def test_follow_up_uses_same_thread(self, handler, backend):
        """Test later messages reuse the chat's thread."""
        await handler.handle(42, "one")
        await handler.handle(42, "two")

        assert len(backend.called("create_thread")) == 1
        assert [c[1] for c in backend.called("create_message")] == ["thread_1", "thread_1"]

    async def test_restart_without_thread(self, handler, backend, transport):
        """Test a restart for an unknown chat does nothing and sends nothing."""
        assert await handler.handle(42, "/restart") is None

        assert backend.calls == []
        assert transport.sent == []

    async def test_reset_command_must_match_verbatim(self, handler, backend):
        """Test text that only contains the command is a normal message."""
        await handler.handle(42, "/restart please")

        assert backend.called("create_message") == [
            ("create_message", "thread_1", "/restart please")
        ]

    async def test_custom_reset_command(self, store, backend, transport, fake_sleep):
        """Test the reset command is configurable."""
        handler = SessionHandler(
            ThreadManager(store, backend),
            RunCoordinator(backend, "asst_123", sleep=fake_sleep),
            transport,
            reset_command="/new",
        )
        await handler.handle(42, "hello")

        assert await handler.handle(42, "/new") is None
        assert await store.get("42") is None

    async def test_thread_creation_failure(self, handler, store, backend, transport):
        """Test the user is told when no thread could be created."""
        backend.fail("create_thread")

        reply = await handler.handle(42, "hello")

        assert reply == THREAD_FAILED_REPLY
        assert transport.sent == [(42, THREAD_FAILED_REPLY)]
        assert backend.called("create_message") == []
        assert await store.get("42") is None

    async def test_run_failure_is_relayed(self, handler, transport, backend):
        """Test failure outcomes are sent as plain text."""
        backend.statuses = [RunStatus.EXPIRED]

        await handler.handle(42, "hello")

        assert transport.sent == [(42, "Run is expired")]

    async def test_active_run_timeout_is_relayed(self, handler, backend, transport):
        """Test an active-run timeout is sent without submitting."""
        backend.active_runs = [[active_run()]]

        await handler.handle(42, "hello")

        assert transport.sent == [(42, WAIT_FAILED_REPLY)]
        assert backend.called("create_message") == []

    async def test_send_failure_is_swallowed(self, handler, transport):
        """Test transport errors are logged, not raised."""
        transport.error = RuntimeError("network down")

        reply = await handler.handle(42, "hello")

        assert reply == "Hello from the assistant"

    async def test_unexpected_error_becomes_reply(self, handler, backend, transport):
        """Test an unexpected exception never escapes the handler."""
        backend.failures["list_runs"] = KeyError("surprise")

        reply = await handler.handle(42, "hello")

        assert reply == UNEXPECTED_ERROR_REPLY
        assert transport.sent == [(42, UNEXPECTED_ERROR_REPLY)]
        assert handler.in_flight == 0
        assert handler.active_chat_count == 0


class TestHandleUpdate:
    """Tests for SessionHandler.handle_update."""

    async def test_text_update(self, handler, transport):
        """Test a text message update is handled."""
        update = Update.model_validate({
            "update_id": 1,
            "message": {"message_id": 5, "chat": {"id": 42, "type": "private"}, "text": "hi"},
        })

        await handler.handle_update(update)

        assert transport.sent == [(42, "Hello from the assistant")]

    async def test_update_without_text(self, handler, backend, transport):
        """Test non-text updates are ignored."""
        update = Update.model_validate({
            "update_id": 1,
            "message": {"message_id": 5, "chat": {"id": 42}},
        })

        assert await handler.handle_update(update) is None
        assert backend.calls == []
        assert transport.sent == []


class TestConcurrency:
    """Tests for per-chat serialisation."""

    async def test_same_chat_messages_do_not_overlap(self, store, backend, transport):
        """Test a second message from a chat waits for the first to finish."""
        release = asyncio.Event()
        order: list[str] = []

        async def gated_sleep(seconds: float) -> None:
            order.append("sleep")
            await release.wait()

        handler = SessionHandler(
            ThreadManager(store, backend),
            RunCoordinator(backend, "asst_123", sleep=gated_sleep),
            transport,
        )

        first = asyncio.create_task(handler.handle(42, "one"))
        second = asyncio.create_task(handler.handle(42, "two"))
        await wait_until(lambda: order == ["sleep"])
        await asyncio.sleep(0.05)

        assert [c[2] for c in backend.called("create_message")] == ["one"]
        assert handler.active_chat_count == 1
        assert handler.in_flight == 2

        release.set()
        await asyncio.gather(first, second)

        assert [c[2] for c in backend.called("create_message")] == ["one", "two"]
        assert handler.active_chat_count == 0

    async def test_different_chats_run_in_parallel(self, store, backend, transport):
        """Test chats don't wait for each other."""
        release = asyncio.Event()

        async def gated_sleep(seconds: float) -> None:
            await release.wait()

        handler = SessionHandler(
            ThreadManager(store, backend),
            RunCoordinator(backend, "asst_123", sleep=gated_sleep),
            transport,
        )

        tasks = [
            asyncio.create_task(handler.handle(1, "from one")),
            asyncio.create_task(handler.handle(2, "from two")),
        ]
        await wait_until(lambda: len(backend.called("create_message")) == 2)

        assert sorted(c[2] for c in backend.called("create_message")) == ["from one", "from two"]
        assert handler.active_chat_count == 2

        release.set()
        await asyncio.gather(*tasks)


class TestChatLocks:
    """Tests for the per-chat lock registry."""

    async def test_lock_released_after_use(self):
        """Test the registry forgets idle chats."""
        locks = ChatLocks()

        async with locks.hold("42"):
            assert len(locks) == 1

        assert len(locks) == 0

    async def test_lock_released_on_error(self):
        """Test the registry is cleaned up when the block raises."""
        locks = ChatLocks()

        with pytest.raises(ValueError):
            async with locks.hold("42"):
                raise ValueError("boom")

        assert len(locks) == 0
