"""
Task management surface used by the CLI (or a dashboard).

"Not found" is an ordinary negative result here, never an exception.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel

from .execution_log import ExecutionLogSink
from .models import EmailMessage, ExecutionLogEntry, Task
from .pipeline import DEFAULT_BODY_CHAR_LIMIT, MessageSource, build_email_message
from .task_store import TaskStore

logger = logging.getLogger(__name__)


class ActionResult(BaseModel):
    success: bool
    message: str
    task: Optional[Task] = None


class EmailsResult(BaseModel):
    success: bool
    message: str
    emails: List[EmailMessage] = []


class TaskService:
    def __init__(
        self,
        store: TaskStore,
        execution_log: ExecutionLogSink,
        source: Optional[MessageSource] = None,
        body_char_limit: int = DEFAULT_BODY_CHAR_LIMIT,
    ):
        self._store = store
        self._log = execution_log
        self._source = source
        self._body_char_limit = body_char_limit

    def list_tasks(self) -> List[Task]:
        return self._store.list_all()

    def get_task(self, task_id: str) -> Optional[Task]:
        if not task_id:
            return None
        return self._store.get(task_id)

    def mark_complete(self, task_id: str) -> ActionResult:
        if not task_id:
            return ActionResult(success=False, message="Task ID is required")

        if not self._store.mark_complete(task_id):
            logger.info("mark_complete: task %s not found.", task_id)
            return ActionResult(success=False, message="Task not found")
        return ActionResult(
            success=True,
            message="Task marked as complete",
            task=self._store.get(task_id),
        )

    def add_note(self, task_id: str, note: str) -> ActionResult:
        """Append a note; every call adds one more entry."""
        if not task_id or not note or not note.strip():
            return ActionResult(success=False, message="Task ID and note are required")

        if not self._store.add_note(task_id, note):
            logger.info("add_note: task %s not found.", task_id)
            return ActionResult(success=False, message="Task not found")
        return ActionResult(
            success=True,
            message="Note added to task",
            task=self._store.get(task_id),
        )

    def get_execution_logs(self) -> List[ExecutionLogEntry]:
        return self._log.read()

    def preview_emails(self, max_results: int = 10) -> EmailsResult:
        """
        Fetch unread inbox messages without extracting or storing anything.

        Promotional messages are left out. Source failures propagate as
        MessageSourceError, the same as during a refresh.
        """
        if self._source is None:
            return EmailsResult(success=False, message="No message source configured")
        if max_results < 1:
            return EmailsResult(success=False, message="max_results must be at least 1")

        emails = []
        for message_id in self._source.list_unread(max_results):
            message, eligible = build_email_message(self._source.get_message(message_id), self._body_char_limit)
            if eligible:
                emails.append(message)
        return EmailsResult(
            success=True,
            message=f"Retrieved {len(emails)} emails from inbox",
            emails=emails,
        )
