"""Pydantic models for assistant threads, runs and messages."""

from enum import Enum

from pydantic import BaseModel, Field


class RunStatus(str, Enum):
    """Status of a backend run as reported by the assistant API."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"
    FAILED = "failed"
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"
    EXPIRED = "expired"


class StatusClass(str, Enum):
    """How the coordinator treats a run status."""

    PENDING = "pending"  # Keep polling
    SUCCESS = "success"
    FAILURE = "failure"


class RunOutcome(str, Enum):
    """Terminal outcome of one coordinator invocation."""

    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class RunPhase(str, Enum):
    """Phases of a coordinator invocation."""

    CHECKING_ACTIVE = "checking_active"
    SUBMITTING = "submitting"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


# Every RunStatus must appear here; the coordinator looks statuses up directly.
STATUS_CLASSES: dict[RunStatus, StatusClass] = {
    RunStatus.QUEUED: StatusClass.PENDING,
    RunStatus.IN_PROGRESS: StatusClass.PENDING,
    RunStatus.CANCELLING: StatusClass.PENDING,
    RunStatus.REQUIRES_ACTION: StatusClass.FAILURE,
    RunStatus.CANCELLED: StatusClass.FAILURE,
    RunStatus.FAILED: StatusClass.FAILURE,
    RunStatus.EXPIRED: StatusClass.FAILURE,
    RunStatus.INCOMPLETE: StatusClass.FAILURE,
    RunStatus.COMPLETED: StatusClass.SUCCESS,
}

# Reply shown to the user when a run ends in a failure status
FAILURE_REPLIES: dict[RunStatus, str] = {
    RunStatus.REQUIRES_ACTION: "Action required for OpenAI assistant",
    RunStatus.CANCELLED: "Run is cancelled",
    RunStatus.FAILED: "Run is failed",
    RunStatus.EXPIRED: "Run is expired",
    RunStatus.INCOMPLETE: "Run is incomplete",
}


def classify_status(status: RunStatus) -> StatusClass:
    """Return the status class for a run status."""
    return STATUS_CLASSES[status]


class RunSummary(BaseModel):
    """A run as returned by run listing."""

    id: str
    status: RunStatus


class MessageSegment(BaseModel):
    """One content segment of a thread message.

    Only segments of type ``text`` carry text; images and other content
    types are kept with ``text`` unset.
    """

    type: str
    text: str | None = None


class ThreadMessage(BaseModel):
    """A message stored on a backend thread."""

    id: str
    role: str
    segments: list[MessageSegment] = Field(default_factory=list)

    @property
    def text(self) -> str:
        """Plain text segments joined by newlines."""
        return "\n".join(
            s.text for s in self.segments
            if s.type == "text" and s.text is not None
        )


class RunResult(BaseModel):
    """Result of a coordinator invocation.

    ``text`` is always the string to relay to the chat. ``reason`` holds
    the detail that goes to the logs.
    """

    outcome: RunOutcome
    text: str
    reason: str | None = None
    run_id: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the run completed."""
        return self.outcome == RunOutcome.COMPLETED
