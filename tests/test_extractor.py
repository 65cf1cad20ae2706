# tests/test_extractor.py

from __future__ import annotations

import json
from datetime import date

import pytest

from inbox_tasks.extractor import TaskExtractor, make_task_id
from inbox_tasks.llm_client import LLMError
from inbox_tasks.models import (
    EmailMessage,
    ExtractionError,
    NoTask,
    TaskExtracted,
    TaskPriority,
    TaskStatus,
)
from inbox_tasks.task_store import InMemoryTaskStore

from .fakes import FakeLLM, FixedClock


def _message(**kwargs) -> EmailMessage:
    values = {
        "id": "msg-1",
        "subject": "Budget review",
        "sender": "Dana <dana@example.org>",
        "date": "Tue, 2 Jan 2024 09:00:00 +0000",
        "body": "Please send me the Q1 budget by March 15.",
    }
    values.update(kwargs)
    return EmailMessage(**values)


def _extractor(reply, store=None) -> tuple[TaskExtractor, InMemoryTaskStore, FakeLLM]:
    store = store or InMemoryTaskStore()
    llm = FakeLLM(default=reply)
    return TaskExtractor(llm, store, clock=FixedClock(1_700_000_000.5)), store, llm


def test_prompt_carries_message_fields() -> None:
    extractor, _, llm = _extractor('{"noTask": true}')
    extractor.extract(_message())

    prompt = llm.prompts[0]
    assert "Email Subject: Budget review" in prompt
    assert "From: Dana <dana@example.org>" in prompt
    assert "Date: Tue, 2 Jan 2024 09:00:00 +0000" in prompt
    assert "Please send me the Q1 budget by March 15." in prompt


def test_task_is_created_and_stored() -> None:
    reply = json.dumps(
        {
            "description": "Send Q1 budget to Dana",
            "priority": "high",
            "dueDate": "2024-03-15",
            "context": "Dana needs it for the board meeting",
        }
    )
    extractor, store, _ = _extractor(reply)

    outcome = extractor.extract(_message())

    assert isinstance(outcome, TaskExtracted)
    task = outcome.task
    assert task.id.startswith("task-msg-1-1700000000500-")
    assert task.email_id == "msg-1"
    assert task.subject == "Budget review"
    assert task.sender == "Dana <dana@example.org>"
    assert task.description == "Send Q1 budget to Dana"
    assert task.priority == TaskPriority.HIGH
    assert task.due_date == date(2024, 3, 15)
    assert task.status == TaskStatus.PENDING
    assert task.notes == ["Dana needs it for the board meeting"]
    assert store.get(task.id) == task


def test_missing_priority_and_context_get_defaults() -> None:
    extractor, _, _ = _extractor('{"description": "Reply to Dana"}')

    task = extractor.extract_task(_message())

    assert task is not None
    assert task.priority == TaskPriority.MEDIUM
    assert task.due_date is None
    assert task.notes == [""]


def test_no_task_marker_inserts_nothing() -> None:
    extractor, store, _ = _extractor('{"noTask": true}')

    outcome = extractor.extract(_message())

    assert isinstance(outcome, NoTask)
    assert outcome.email_id == "msg-1"
    assert store.list_all() == []
    assert extractor.extract_task(_message()) is None


@pytest.mark.parametrize(
    "reply",
    [
        '{"noTask": true, "priority": "urgent"}',
        '{"noTask": "true", "description": "", "dueDate": 7}',
    ],
)
def test_no_task_marker_wins_over_other_fields(reply: str) -> None:
    extractor, store, _ = _extractor(reply)

    outcome = extractor.extract(_message())

    assert isinstance(outcome, NoTask)
    assert store.list_all() == []


@pytest.mark.parametrize(
    "reply",
    [
        "I could not find anything.",
        '{"description": ',
        "[1, 2, 3]",
        '{"priority": "high"}',
        '{"description": "x", "priority": "whenever"}',
        '{"description": "   "}',
    ],
)
def test_unusable_reply_is_an_extraction_error(reply: str) -> None:
    extractor, store, _ = _extractor(reply)

    outcome = extractor.extract(_message())

    assert isinstance(outcome, ExtractionError)
    assert outcome.email_id == "msg-1"
    assert outcome.detail
    assert store.list_all() == []


@pytest.mark.parametrize("error", [LLMError("HTTP error from LLM API"), TimeoutError("slow model")])
def test_model_failure_is_an_extraction_error(error: Exception) -> None:
    extractor, store, _ = _extractor(error)

    outcome = extractor.extract(_message())

    assert isinstance(outcome, ExtractionError)
    assert store.list_all() == []


def test_fenced_reply_is_accepted() -> None:
    extractor, _, _ = _extractor('```json\n{"description": "Book travel", "priority": "low"}\n```')
    task = extractor.extract_task(_message())
    assert task is not None
    assert task.priority == TaskPriority.LOW


def test_task_ids_are_unique_for_same_message_and_instant() -> None:
    clock = FixedClock()
    ids = {make_task_id("msg-1", clock) for _ in range(50)}
    assert len(ids) == 50
