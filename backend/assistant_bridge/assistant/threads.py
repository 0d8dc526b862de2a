"""ThreadManager maps chat identities to backend threads."""

import logging

from assistant_bridge.assistant.backend_client import AssistantBackendClient
from assistant_bridge.assistant.errors import BackendError
from assistant_bridge.db.session_store import SessionStore

logger = logging.getLogger(__name__)


class ThreadManager:
    """Resolves, creates and resets the thread for a chat.

    The store is the only place the mapping lives. A thread is created on
    first contact and kept until an explicit reset.
    """

    def __init__(
        self,
        store: SessionStore,
        backend: AssistantBackendClient,
        session_ttl: float | None = None,
    ):
        """Initialize the manager.

        Args:
            store: Store holding the chat -> thread mapping.
            backend: Assistant backend client.
            session_ttl: Optional lifetime of a mapping in seconds.
        """
        self._store = store
        self._backend = backend
        self._session_ttl = session_ttl

    async def resolve(self, chat_id: int | str) -> str:
        """Return the thread for a chat, creating it if needed.

        Raises:
            ThreadCreationError: If a new thread could not be created.
                Nothing is persisted in that case.
        """
        key = str(chat_id)
        thread_id = await self._store.get(key)
        if thread_id is not None:
            return thread_id

        thread_id = await self._backend.create_thread()
        await self._store.set(key, thread_id, self._session_ttl)
        logger.info(f"Mapped chat {key} to thread {thread_id}")
        return thread_id

    async def reset(self, chat_id: int | str) -> bool:
        """Forget the chat's thread and delete it on the backend.

        Backend deletion is best effort; the mapping is removed even if it
        fails so the next message starts a fresh thread.

        Returns:
            True if a mapping existed, False otherwise.
        """
        key = str(chat_id)
        thread_id = await self._store.get(key)
        if thread_id is None:
            return False

        try:
            await self._backend.delete_thread(thread_id)
        except BackendError as e:
            logger.error(f"Failed to delete thread {thread_id}: {e}")

        await self._store.delete(key)
        logger.info(f"Reset chat {key} (thread {thread_id})")
        return True
