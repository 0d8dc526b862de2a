"""Long-polling update loop for running without a public webhook."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from assistant_bridge.telegram.client import TelegramClient, TelegramError
from assistant_bridge.telegram.models import Update

logger = logging.getLogger(__name__)

RETRY_DELAY = 5.0  # seconds after a failed getUpdates

UpdateCallback = Callable[[Update], Awaitable[object]]


class UpdatePoller:
    """Fetches updates with getUpdates and handles each in its own task."""

    def __init__(
        self,
        client: TelegramClient,
        on_update: UpdateCallback,
        poll_timeout: int = 30,
    ):
        self._client = client
        self._on_update = on_update
        self._poll_timeout = poll_timeout
        self._offset: int | None = None
        self._task: asyncio.Task | None = None
        self._update_tasks: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._task is not None

    async def start(self) -> None:
        """Drop any webhook and start the polling loop."""
        if self._task is None:
            await self._client.delete_webhook()
            self._task = asyncio.create_task(self._loop())
            logger.info("Started Telegram polling loop")

    async def stop(self) -> None:
        """Stop polling and wait for in-flight updates."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Stopped Telegram polling loop")

        if self._update_tasks:
            await asyncio.gather(*self._update_tasks, return_exceptions=True)

    async def poll_once(self) -> int:
        """Fetch one batch of updates and dispatch them.

        Returns:
            Number of updates dispatched.
        """
        updates = await self._client.get_updates(self._offset, self._poll_timeout)
        for update in updates:
            self._offset = update.update_id + 1
            task = asyncio.create_task(self._on_update(update))
            self._update_tasks.add(task)
            task.add_done_callback(self._update_tasks.discard)
        return len(updates)

    async def _loop(self) -> None:
        while True:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                break
            except TelegramError as e:
                logger.warning(f"getUpdates failed, retrying in {RETRY_DELAY}s: {e}")
                await asyncio.sleep(RETRY_DELAY)
            except Exception as e:
                logger.exception(f"Error in Telegram polling loop: {e}")
                await asyncio.sleep(RETRY_DELAY)
