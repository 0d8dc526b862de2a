"""Assistant run orchestration.

This module provides the core of the bridge:
- ThreadManager: maps a chat to its backend thread
- RunCoordinator: submits a message and polls the run to a reply
- SessionHandler: composes both and relays the reply to the chat
"""

from assistant_bridge.assistant.backend_client import AssistantBackendClient
from assistant_bridge.assistant.errors import BackendError, ThreadCreationError
from assistant_bridge.assistant.handler import SessionHandler
from assistant_bridge.assistant.models import (
    RunOutcome,
    RunResult,
    RunStatus,
    ThreadMessage,
)
from assistant_bridge.assistant.runs import RunCoordinator
from assistant_bridge.assistant.threads import ThreadManager

__all__ = [
    "AssistantBackendClient",
    "BackendError",
    "RunCoordinator",
    "RunOutcome",
    "RunResult",
    "RunStatus",
    "SessionHandler",
    "ThreadCreationError",
    "ThreadManager",
    "ThreadMessage",
]
