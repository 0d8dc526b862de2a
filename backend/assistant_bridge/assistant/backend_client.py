"""OpenAI Assistants API wrapper.

Thin async layer over ``client.beta.threads`` that converts SDK objects into
the bridge's own models and SDK exceptions into ``BackendError``.
"""

import logging
import os
from collections.abc import Iterable
from typing import Any

import httpx
import openai

from assistant_bridge.assistant.errors import BackendError, ThreadCreationError
from assistant_bridge.assistant.models import (
    MessageSegment,
    RunStatus,
    RunSummary,
    ThreadMessage,
)

logger = logging.getLogger(__name__)


class AssistantBackendClient:
    """Async client for the thread, message and run endpoints.

    Calls are never retried here: the SDK's own retry loop is disabled by
    default so each operation maps to exactly one request.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        max_retries: int = 0,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client.

        Args:
            api_key: OpenAI API key. If not provided, uses OPENAI_API_KEY env var.
            base_url: Optional API base URL override.
            max_retries: Retries performed by the SDK per request.
            http_client: Optional httpx client (used by tests).
        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError(
                "OpenAI API key required. Set OPENAI_API_KEY environment variable "
                "or pass api_key parameter."
            )
        self._client = openai.AsyncOpenAI(
            api_key=self.api_key,
            base_url=base_url,
            max_retries=max_retries,
            http_client=http_client,
        )

    @property
    def _threads(self) -> Any:
        return self._client.beta.threads

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.close()

    async def create_thread(self) -> str:
        """Create an empty thread and return its id.

        Raises:
            ThreadCreationError: If the API call fails.
        """
        try:
            thread = await self._threads.create()
        except openai.OpenAIError as e:
            raise ThreadCreationError(
                f"Failed to create thread: {e}", operation="create_thread"
            ) from e
        logger.info(f"New thread (ID: {thread.id}) created.")
        return thread.id

    async def delete_thread(self, thread_id: str) -> None:
        """Delete a thread."""
        try:
            await self._threads.delete(thread_id)
        except openai.OpenAIError as e:
            raise BackendError(
                f"Failed to delete thread {thread_id}: {e}", operation="delete_thread"
            ) from e
        logger.info(f"Old thread (ID: {thread_id}) deleted.")

    async def list_runs(
        self,
        thread_id: str,
        statuses: Iterable[RunStatus] | None = None,
    ) -> list[RunSummary]:
        """List runs on a thread, optionally restricted to some statuses.

        The status filter is sent as a query parameter and also applied to
        the returned page, since the API treats it as a hint.
        """
        wanted = set(statuses) if statuses is not None else None
        extra_query: dict[str, str] | None = None
        if wanted is not None and len(wanted) == 1:
            extra_query = {"status": next(iter(wanted)).value}

        try:
            page = await self._threads.runs.list(thread_id, extra_query=extra_query)
        except openai.OpenAIError as e:
            raise BackendError(
                f"Failed to list runs: {e}", operation="list_runs"
            ) from e

        runs = []
        for run in page.data:
            try:
                status = RunStatus(run.status)
            except ValueError:
                logger.warning(f"Ignoring run {run.id} with unknown status {run.status!r}")
                continue
            if wanted is None or status in wanted:
                runs.append(RunSummary(id=run.id, status=status))
        return runs

    async def create_message(self, thread_id: str, text: str) -> None:
        """Append a user message to a thread."""
        try:
            await self._threads.messages.create(
                thread_id=thread_id,
                role="user",
                content=text,
            )
        except openai.OpenAIError as e:
            raise BackendError(
                f"Failed to create message: {e}", operation="create_message"
            ) from e

    async def create_run(self, thread_id: str, assistant_id: str) -> str:
        """Start a run of the assistant on a thread and return the run id."""
        try:
            run = await self._threads.runs.create(
                thread_id=thread_id,
                assistant_id=assistant_id,
            )
        except openai.OpenAIError as e:
            raise BackendError(
                f"Failed to create run: {e}", operation="create_run"
            ) from e
        return run.id

    async def get_run(self, thread_id: str, run_id: str) -> RunStatus:
        """Retrieve the current status of a run."""
        try:
            run = await self._threads.runs.retrieve(run_id=run_id, thread_id=thread_id)
        except openai.OpenAIError as e:
            raise BackendError(
                f"Failed to retrieve run: {e}", operation="get_run"
            ) from e

        logger.debug(f"Run object: {run}")
        try:
            return RunStatus(run.status)
        except ValueError as e:
            raise BackendError(
                f"Unknown status {run.status!r} for run {run_id}", operation="get_run"
            ) from e

    async def list_recent_messages(
        self, thread_id: str, limit: int = 1
    ) -> list[ThreadMessage]:
        """List the newest messages on a thread, newest first."""
        try:
            page = await self._threads.messages.list(
                thread_id=thread_id,
                limit=limit,
                order="desc",
            )
        except openai.OpenAIError as e:
            raise BackendError(
                f"Failed to list messages: {e}", operation="list_messages"
            ) from e

        return [_to_thread_message(m) for m in page.data]


def _to_thread_message(message: Any) -> ThreadMessage:
    """Convert an SDK message into a ThreadMessage."""
    segments = []
    for block in message.content or []:
        block_type = getattr(block, "type", "unknown")
        if block_type == "text":
            segments.append(MessageSegment(type="text", text=block.text.value))
        else:
            segments.append(MessageSegment(type=block_type))
    return ThreadMessage(id=message.id, role=message.role, segments=segments)
