"""
Task extraction: one eligible message in, at most one task out.

The extractor owns the model call, the response parsing and the store
insert. It never raises for a bad model reply; those become an
ExtractionError outcome that the pipeline logs and skips.
"""

import logging
import time
import uuid
from typing import Callable, Optional, Protocol

from pydantic import ValidationError

from .llm_client import LLMError, parse_json_object
from .models import (
    EmailMessage,
    ExtractionError,
    ExtractionOutcome,
    ExtractionResponse,
    NoTask,
    Task,
    TaskExtracted,
    TaskStatus,
)
from .prompts import build_extraction_prompt
from .task_store import TaskStore

logger = logging.getLogger(__name__)


class CompletionModel(Protocol):
    def complete(self, prompt: str) -> str:
        ...


def make_task_id(email_id: str, clock: Callable[[], float] = time.time) -> str:
    """
    task-<message id>-<epoch millis>-<6 hex chars>

    The random tail keeps ids unique when two runs handle the same message
    within the same millisecond.
    """
    millis = int(clock() * 1000)
    return f"task-{email_id}-{millis}-{uuid.uuid4().hex[:6]}"


def _declares_no_task(data: dict) -> bool:
    """A noTask marker wins over whatever else the reply carries."""
    flag = data.get("noTask")
    if isinstance(flag, str):
        return flag.strip().lower() == "true"
    return flag is True


class TaskExtractor:
    def __init__(
        self,
        llm: CompletionModel,
        store: TaskStore,
        clock: Callable[[], float] = time.time,
    ):
        self._llm = llm
        self._store = store
        self._clock = clock

    def extract(self, message: EmailMessage) -> ExtractionOutcome:
        prompt = build_extraction_prompt(message)

        try:
            raw = self._llm.complete(prompt)
            data = parse_json_object(raw)
            if _declares_no_task(data):
                logger.info("No actionable task in message %s.", message.id)
                return NoTask(email_id=message.id)
            response = ExtractionResponse.model_validate(data)
        except LLMError as e:
            return self._failed(message, str(e))
        except ValidationError as e:
            return self._failed(message, f"Malformed task structure: {e.error_count()} validation error(s)")
        except Exception as e:
            # Model transports may raise their own errors (timeouts, SDK errors).
            return self._failed(message, f"{type(e).__name__}: {e}")

        if response.no_task:
            logger.info("No actionable task in message %s.", message.id)
            return NoTask(email_id=message.id)

        description = (response.description or "").strip()
        if not description:
            return self._failed(message, "Response has neither a description nor noTask.")

        task = Task(
            id=make_task_id(message.id, self._clock),
            email_id=message.id,
            subject=message.subject,
            description=description,
            sender=message.sender,
            priority=response.priority,
            due_date=response.due_date,
            status=TaskStatus.PENDING,
            notes=[response.context or ""],
        )
        self._store.insert(task)
        logger.info(
            "Extracted task %s (priority=%s) from message %s.",
            task.id,
            task.priority.value,
            message.id,
        )
        return TaskExtracted(task=task)

    def extract_task(self, message: EmailMessage) -> Optional[Task]:
        """Convenience wrapper returning the created task or None."""
        outcome = self.extract(message)
        if isinstance(outcome, TaskExtracted):
            return outcome.task
        return None

    def _failed(self, message: EmailMessage, detail: str) -> ExtractionError:
        logger.warning("Task extraction failed for message %s: %s", message.id, detail)
        return ExtractionError(email_id=message.id, detail=detail)
