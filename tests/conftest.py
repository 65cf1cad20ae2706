# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from inbox_tasks.execution_log import InMemoryExecutionLog, JsonFileExecutionLog
from inbox_tasks.models import Task, TaskPriority
from inbox_tasks.task_store import InMemoryTaskStore, JsonFileTaskStore


@pytest.fixture(params=["memory", "json"])
def store(request: pytest.FixtureRequest, tmp_path: Path):
    """Every task store test runs against both backends."""
    if request.param == "memory":
        return InMemoryTaskStore()
    return JsonFileTaskStore(tmp_path / "tasks.json")


@pytest.fixture(params=["memory", "json"])
def execution_log(request: pytest.FixtureRequest, tmp_path: Path):
    if request.param == "memory":
        return InMemoryExecutionLog()
    return JsonFileExecutionLog(tmp_path / "execution_log.json")


@pytest.fixture()
def make_task():
    def _make(
        task_id: str = "task-m1-1",
        email_id: str = "m1",
        description: str = "Send the report",
        notes: list[str] | None = None,
        **kwargs,
    ) -> Task:
        return Task(
            id=task_id,
            email_id=email_id,
            subject=kwargs.pop("subject", "Report"),
            description=description,
            sender=kwargs.pop("sender", "Alice <alice@example.org>"),
            priority=kwargs.pop("priority", TaskPriority.MEDIUM),
            notes=[""] if notes is None else notes,
            **kwargs,
        )

    return _make
