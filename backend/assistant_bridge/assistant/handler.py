"""SessionHandler is the per-message entry point of the bridge."""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, Protocol

from assistant_bridge.assistant.errors import ThreadCreationError
from assistant_bridge.assistant.runs import RunCoordinator
from assistant_bridge.assistant.threads import ThreadManager
from assistant_bridge.telegram.models import Update

logger = logging.getLogger(__name__)

DEFAULT_RESET_COMMAND = "/restart"
THREAD_FAILED_REPLY = "Failed to create thread."
UNEXPECTED_ERROR_REPLY = "Something went wrong. Please try again."


class ChatTransport(Protocol):
    """Outbound side of the chat transport."""

    async def send_message(self, chat_id: int | str, text: str) -> None: ...


class ChatLocks:
    """Per-chat asyncio locks, dropped once nobody holds or waits on them."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncGenerator[None, None]:
        """Hold the lock for ``key`` for the duration of the block."""
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]


class SessionHandler:
    """Handles one incoming chat message end to end.

    Responsibilities:
    - Recognise the reset command and forget the chat's thread
    - Resolve (or create) the chat's thread
    - Run the assistant on the message and relay the reply

    Messages from the same chat are processed one at a time. The run
    coordinator's active-run check still guards against runs started by
    other processes.
    """

    def __init__(
        self,
        threads: ThreadManager,
        runs: RunCoordinator,
        transport: ChatTransport,
        reset_command: str = DEFAULT_RESET_COMMAND,
    ):
        self._threads = threads
        self._runs = runs
        self._transport = transport
        self._reset_command = reset_command
        self._locks = ChatLocks()
        self._in_flight = 0

    @property
    def active_chat_count(self) -> int:
        """Number of chats with a message being handled or waiting."""
        return len(self._locks)

    @property
    def in_flight(self) -> int:
        """Number of messages currently being handled."""
        return self._in_flight

    async def handle_update(self, update: Update) -> str | None:
        """Handle a Telegram update. Updates without text are ignored."""
        chat_text = update.chat_text
        if chat_text is None:
            logger.debug(f"Ignoring update {update.update_id} without text message")
            return None
        chat_id, text = chat_text
        return await self.handle(chat_id, text)

    async def handle(self, chat_id: int | str, text: str) -> str | None:
        """Handle a message and send the reply.

        Never raises: every failure becomes a reply string.

        Returns:
            The reply sent to the chat, or None for the reset command.
        """
        self._in_flight += 1
        try:
            async with self._locks.hold(str(chat_id)):
                reply = await self._process(chat_id, text)
        except Exception as e:
            logger.exception(f"Error handling message from chat {chat_id}: {e}")
            reply = UNEXPECTED_ERROR_REPLY
        finally:
            self._in_flight -= 1

        if reply is not None:
            await self._send(chat_id, reply)
        return reply

    async def _process(self, chat_id: int | str, text: str) -> str | None:
        if text == self._reset_command:
            await self._threads.reset(chat_id)
            return None

        try:
            thread_id = await self._threads.resolve(chat_id)
        except ThreadCreationError as e:
            logger.error(f"Failed to create thread for chat {chat_id}: {e}")
            return THREAD_FAILED_REPLY

        result = await self._runs.run(thread_id, text)
        if not result.ok:
            logger.info(
                f"Run for chat {chat_id} ended {result.outcome.value}: {result.reason}"
            )
        return result.text

    async def _send(self, chat_id: int | str, text: str) -> None:
        try:
            await self._transport.send_message(chat_id, text)
        except Exception as e:
            logger.error(f"Failed to send message to chat {chat_id}: {e}")

    def get_stats(self) -> dict[str, Any]:
        """Get handler statistics."""
        return {
            "active_chats": self.active_chat_count,
            "in_flight": self.in_flight,
        }
