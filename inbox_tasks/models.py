"""
Pydantic models for inbox messages, tasks, execution log entries and run results.
"""

import logging
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TaskPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class RunOutcome(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class PipelineState(str, Enum):
    IDLE = "idle"
    FETCHING_MESSAGES = "fetching_messages"
    EXTRACTING_TASKS = "extracting_tasks"
    PERSISTING = "persisting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_due_date(value) -> Optional[date]:
    """
    Leniently parse a due date coming from the model.

    Accepts date/datetime objects and ISO-8601 date or datetime strings.
    Anything else is dropped (None) rather than rejected.
    """
    if value is None or (isinstance(value, date) and not isinstance(value, datetime)):
        return value
    if isinstance(value, datetime):
        return value.date()
    if not isinstance(value, str):
        logger.warning("Ignoring non-string due date %r.", value)
        return None

    text = value.strip()
    if not text or text.lower() in ("null", "none", "n/a"):
        return None

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        logger.warning("Ignoring unparseable due date %r.", value)
        return None


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class EmailMessage(BaseModel):
    """
    One unread message as seen by a single refresh run.

    Never persisted; body is already decoded and truncated.
    """

    id: str
    subject: str = ""
    sender: str = ""
    date: str = ""
    body: str = ""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=False,
    )


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class Task(BaseModel):
    """
    A single actionable item derived from one message.

    id and email_id are fixed once the task exists; notes only ever grow.
    """

    id: str = Field(frozen=True)
    email_id: str = Field(frozen=True)
    subject: str = ""
    description: str
    sender: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[date] = None
    status: TaskStatus = TaskStatus.PENDING
    notes: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("due_date", mode="before")
    @classmethod
    def validate_due_date(cls, v):
        return parse_due_date(v)

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=False,
    )


class ExtractionResponse(BaseModel):
    """
    Structured reply expected from the model for one message.

    Either no_task is true, or description is present.
    """

    no_task: bool = Field(default=False, alias="noTask")
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[date] = Field(default=None, alias="dueDate")
    context: Optional[str] = None

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return TaskPriority.MEDIUM
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def validate_due_date(cls, v):
        return parse_due_date(v)

    @field_validator("context", mode="before")
    @classmethod
    def coerce_context(cls, v):
        if v is None or isinstance(v, str):
            return v
        return str(v)

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )


# ---------------------------------------------------------------------------
# Per-message extraction outcome
# ---------------------------------------------------------------------------


class TaskExtracted(BaseModel):
    kind: Literal["task"] = "task"
    task: Task


class NoTask(BaseModel):
    kind: Literal["no_task"] = "no_task"
    email_id: str


class ExtractionError(BaseModel):
    kind: Literal["error"] = "error"
    email_id: str
    detail: str


ExtractionOutcome = Union[TaskExtracted, NoTask, ExtractionError]


# ---------------------------------------------------------------------------
# Execution log and run results
# ---------------------------------------------------------------------------


class ExecutionLogEntry(BaseModel):
    """
    One record per refresh run. Never modified after it is appended.
    """

    timestamp: datetime = Field(default_factory=_utcnow)
    emails_checked: int = 0
    tasks_extracted: int = 0
    status: RunOutcome
    error: Optional[str] = None

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
    )


class RunSummary(BaseModel):
    emails_checked: int
    eligible_emails: int
    tasks_extracted: int
    total_tasks: int
    tasks: List[Task] = Field(default_factory=list)
    message: str = ""


class RunSucceeded(BaseModel):
    status: Literal[RunOutcome.SUCCESS] = RunOutcome.SUCCESS
    summary: RunSummary


class RunFailed(BaseModel):
    status: Literal[RunOutcome.ERROR] = RunOutcome.ERROR
    cause: str
    failed_state: PipelineState
    emails_checked: int = 0


RunResult = Union[RunSucceeded, RunFailed]


# ---------------------------------------------------------------------------
# File-level containers
# ---------------------------------------------------------------------------


class TasksFile(BaseModel):
    """
    Container for tasks.json.
    """

    tasks: List[Task] = Field(default_factory=list)

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=False,
    )


class ExecutionLogFile(BaseModel):
    """
    Container for execution_log.json.
    """

    entries: List[ExecutionLogEntry] = Field(default_factory=list)

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=False,
    )


__all__ = [
    "TaskPriority",
    "TaskStatus",
    "RunOutcome",
    "PipelineState",
    "parse_due_date",
    "EmailMessage",
    "Task",
    "ExtractionResponse",
    "TaskExtracted",
    "NoTask",
    "ExtractionError",
    "ExtractionOutcome",
    "ExecutionLogEntry",
    "RunSummary",
    "RunSucceeded",
    "RunFailed",
    "RunResult",
    "TasksFile",
    "ExecutionLogFile",
]
