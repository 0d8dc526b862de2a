"""RunCoordinator drives one assistant run from submission to reply.

Phases of an invocation:

    checking_active -> submitting -> polling -> completed | failed | timed_out

1. checking_active: wait until the thread has no in-progress run. The
   backend does not serialise runs, so a message is only appended once the
   thread is idle.
2. submitting: append the user message and create a run.
3. polling: sleep, retrieve the run status, classify it.
4. completed: read the newest thread message and return its text.

Every loop is attempt-bounded and every failure becomes a RunResult with a
short user-facing text; nothing is raised to the caller for backend errors.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from assistant_bridge.assistant.backend_client import AssistantBackendClient
from assistant_bridge.assistant.errors import BackendError
from assistant_bridge.assistant.models import (
    FAILURE_REPLIES,
    RunOutcome,
    RunPhase,
    RunResult,
    RunStatus,
    StatusClass,
    classify_status,
)

logger = logging.getLogger(__name__)

# Default loop bounds
ACTIVE_RUN_ATTEMPTS = 5
ACTIVE_RUN_INTERVAL = 5.0  # seconds
POLL_ATTEMPTS = 5
POLL_INTERVAL = 8.0  # seconds

# User-facing replies
WAIT_FAILED_REPLY = "Failed to wait for active run."
CREATE_MESSAGE_FAILED_REPLY = "Failed to create message."
CREATE_RUN_FAILED_REPLY = "Failed to create run."
RETRIEVE_RUN_FAILED_REPLY = "Failed to retrieve run."
LIST_MESSAGES_FAILED_REPLY = "Failed to list messages."
POLL_TIMEOUT_REPLY = "Timeout"
NO_MESSAGES_REPLY = "No messages found."

ACTIVE_STATUSES = (RunStatus.IN_PROGRESS,)

SleepFunc = Callable[[float], Awaitable[None]]


class RunCoordinator:
    """Submits a message to a thread and waits for the assistant's reply."""

    def __init__(
        self,
        backend: AssistantBackendClient,
        assistant_id: str,
        active_run_attempts: int = ACTIVE_RUN_ATTEMPTS,
        active_run_interval: float = ACTIVE_RUN_INTERVAL,
        poll_attempts: int = POLL_ATTEMPTS,
        poll_interval: float = POLL_INTERVAL,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """Initialize the coordinator.

        Args:
            backend: Assistant backend client.
            assistant_id: Assistant that runs are created for.
            active_run_attempts: How often to check for an active run.
            active_run_interval: Seconds between active-run checks.
            poll_attempts: How often to retrieve the run status.
            poll_interval: Seconds to wait before each status retrieval.
            sleep: Suspend primitive, ``asyncio.sleep`` unless overridden.
        """
        self._backend = backend
        self._assistant_id = assistant_id
        self._active_run_attempts = active_run_attempts
        self._active_run_interval = active_run_interval
        self._poll_attempts = poll_attempts
        self._poll_interval = poll_interval
        self._sleep = sleep

    async def run(self, thread_id: str, text: str) -> RunResult:
        """Send ``text`` to the thread and return the assistant's reply."""
        self._enter(thread_id, RunPhase.CHECKING_ACTIVE)
        blocked = await self._wait_for_idle_thread(thread_id)
        if blocked is not None:
            return blocked

        self._enter(thread_id, RunPhase.SUBMITTING)
        try:
            await self._backend.create_message(thread_id, text)
        except BackendError as e:
            return self._fail(thread_id, CREATE_MESSAGE_FAILED_REPLY, str(e))

        try:
            run_id = await self._backend.create_run(thread_id, self._assistant_id)
        except BackendError as e:
            return self._fail(thread_id, CREATE_RUN_FAILED_REPLY, str(e))
        logger.info(f"Started run {run_id} on thread {thread_id}")

        self._enter(thread_id, RunPhase.POLLING)
        status = await self._poll(thread_id, run_id)
        if isinstance(status, RunResult):
            return status

        if status is None:
            self._enter(thread_id, RunPhase.TIMED_OUT)
            logger.warning(
                f"Run {run_id} still pending after {self._poll_attempts} polls"
            )
            return RunResult(
                outcome=RunOutcome.TIMED_OUT,
                text=POLL_TIMEOUT_REPLY,
                reason="run did not finish in time",
                run_id=run_id,
            )

        if classify_status(status) == StatusClass.FAILURE:
            self._enter(thread_id, RunPhase.FAILED)
            logger.warning(f"Run {run_id} ended with status {status.value}")
            return RunResult(
                outcome=RunOutcome.FAILED,
                text=FAILURE_REPLIES[status],
                reason=status.value,
                run_id=run_id,
            )

        self._enter(thread_id, RunPhase.COMPLETED)
        return await self._fetch_reply(thread_id, run_id)

    async def _wait_for_idle_thread(self, thread_id: str) -> RunResult | None:
        """Wait until no run is in progress on the thread.

        Returns:
            None once the thread is idle, otherwise the terminal RunResult.
        """
        for attempt in range(1, self._active_run_attempts + 1):
            try:
                active = await self._backend.list_runs(thread_id, ACTIVE_STATUSES)
            except BackendError as e:
                return self._fail(thread_id, WAIT_FAILED_REPLY, str(e))

            if not active:
                return None

            logger.debug(
                f"Thread {thread_id} has {len(active)} active run(s) "
                f"(check {attempt}/{self._active_run_attempts})"
            )
            if attempt < self._active_run_attempts:
                await self._sleep(self._active_run_interval)

        self._enter(thread_id, RunPhase.TIMED_OUT)
        logger.warning(f"Run is still active on thread {thread_id} after waiting")
        return RunResult(
            outcome=RunOutcome.TIMED_OUT,
            text=WAIT_FAILED_REPLY,
            reason="prior run still active",
        )

    async def _poll(self, thread_id: str, run_id: str) -> RunStatus | RunResult | None:
        """Poll the run until it leaves the pending states.

        Returns:
            The terminal RunStatus, None if the attempts ran out, or a
            RunResult if retrieving the run failed.
        """
        for attempt in range(1, self._poll_attempts + 1):
            await self._sleep(self._poll_interval)
            try:
                status = await self._backend.get_run(thread_id, run_id)
            except BackendError as e:
                result = self._fail(thread_id, RETRIEVE_RUN_FAILED_REPLY, str(e))
                result.run_id = run_id
                return result

            logger.debug(
                f"Run {run_id} is {status.value} (poll {attempt}/{self._poll_attempts})"
            )
            if classify_status(status) != StatusClass.PENDING:
                return status

        return None

    async def _fetch_reply(self, thread_id: str, run_id: str) -> RunResult:
        """Read the newest thread message and build the completed result."""
        try:
            messages = await self._backend.list_recent_messages(thread_id, limit=1)
        except BackendError as e:
            result = self._fail(thread_id, LIST_MESSAGES_FAILED_REPLY, str(e))
            result.run_id = run_id
            return result

        if not messages:
            logger.warning(f"Run {run_id} completed but thread {thread_id} has no messages")
            return RunResult(
                outcome=RunOutcome.COMPLETED,
                text=NO_MESSAGES_REPLY,
                reason="no messages",
                run_id=run_id,
            )

        logger.info(f"Run {run_id} completed on thread {thread_id}")
        return RunResult(
            outcome=RunOutcome.COMPLETED,
            text=messages[0].text,
            run_id=run_id,
        )

    def _fail(self, thread_id: str, reply: str, reason: str) -> RunResult:
        self._enter(thread_id, RunPhase.FAILED)
        logger.error(reason)
        return RunResult(outcome=RunOutcome.FAILED, text=reply, reason=reason)

    @staticmethod
    def _enter(thread_id: str, phase: RunPhase) -> None:
        logger.debug(f"Thread {thread_id}: {phase.value}")
