"""Bridge wires the store, the clients and the handler together.

One Bridge lives for the lifetime of the process. It owns the background
work: the session cleanup loop and, in polling mode, the update poller.
"""

import asyncio
import logging
from typing import Any

from assistant_bridge.assistant.backend_client import AssistantBackendClient
from assistant_bridge.assistant.handler import SessionHandler
from assistant_bridge.assistant.runs import RunCoordinator
from assistant_bridge.assistant.threads import ThreadManager
from assistant_bridge.config import Settings
from assistant_bridge.db.database import close_database, init_database
from assistant_bridge.db.session_store import SqliteSessionStore
from assistant_bridge.telegram.client import TelegramClient
from assistant_bridge.telegram.poller import UpdatePoller

logger = logging.getLogger(__name__)


class Bridge:
    """Container for the running bridge components."""

    def __init__(
        self,
        settings: Settings,
        store: SqliteSessionStore,
        backend: AssistantBackendClient,
        telegram: TelegramClient,
    ):
        self.settings = settings
        self.store = store
        self.backend = backend
        self.telegram = telegram
        self.threads = ThreadManager(store, backend, settings.session_ttl_seconds)
        self.runs = RunCoordinator(backend, settings.assistant_id)
        self.handler = SessionHandler(
            self.threads,
            self.runs,
            telegram,
            reset_command=settings.reset_command,
        )
        self.poller: UpdatePoller | None = None
        self._cleanup_task: asyncio.Task | None = None

    @classmethod
    async def create(cls, settings: Settings) -> "Bridge":
        """Open the database and build the clients from settings."""
        await init_database(settings.database_path)
        backend = AssistantBackendClient(api_key=settings.openai_api_key)
        telegram = TelegramClient(
            settings.telegram_token,
            api_base=settings.telegram_api_base,
        )
        return cls(settings, SqliteSessionStore(), backend, telegram)

    async def start(self) -> None:
        """Start background tasks and register for updates."""
        if self.settings.session_ttl_seconds is not None:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            logger.info("Started session cleanup background task")

        if self.settings.telegram_mode == "polling":
            self.poller = UpdatePoller(self.telegram, self.handler.handle_update)
            await self.poller.start()
        elif self.settings.telegram_webhook_url:
            await self.telegram.set_webhook(
                self.settings.telegram_webhook_url,
                self.settings.telegram_webhook_secret,
            )

    async def shutdown(self) -> None:
        """Stop background tasks and close clients and database."""
        if self.poller:
            await self.poller.stop()
            self.poller = None

        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
            logger.info("Stopped session cleanup background task")

        await self.telegram.close()
        await self.backend.close()
        await close_database()
        logger.info("Bridge shutdown complete")

    async def _cleanup_loop(self) -> None:
        """Background loop that removes expired sessions."""
        while True:
            try:
                await asyncio.sleep(self.settings.cleanup_interval_seconds)
                await self.store.cleanup_expired()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception(f"Error in session cleanup task: {e}")

    async def get_stats(self) -> dict[str, Any]:
        """Get bridge statistics."""
        return {
            "sessions": await self.store.count(),
            **self.handler.get_stats(),
            "mode": self.settings.telegram_mode,
        }
