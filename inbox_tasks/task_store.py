"""
Task storage.

TaskStore is the interface the pipeline and the task API depend on. Two
implementations are provided:
- InMemoryTaskStore: dict keyed by task id
- JsonFileTaskStore: same semantics, persisted to tasks.json

Unknown ids are never an error: mark_complete/add_note return False and get
returns None. Tasks handed out are copies; the store owns the records.
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from .file_io import atomic_write_text, file_lock
from .models import Task, TasksFile, TaskStatus

logger = logging.getLogger(__name__)


class TaskStore(ABC):
    @abstractmethod
    def insert(self, task: Task) -> None:
        """Insert or replace the task stored under task.id."""

    @abstractmethod
    def get(self, task_id: str) -> Optional[Task]:
        ...

    @abstractmethod
    def mark_complete(self, task_id: str) -> bool:
        ...

    @abstractmethod
    def add_note(self, task_id: str, text: str) -> bool:
        ...

    @abstractmethod
    def list_all(self) -> List[Task]:
        ...

    def find_by_message(self, email_id: str) -> List[Task]:
        """All tasks derived from the given source message."""
        return [t for t in self.list_all() if t.email_id == email_id]


class InMemoryTaskStore(TaskStore):
    def __init__(self, tasks: Optional[List[Task]] = None):
        self._lock = threading.Lock()
        self._tasks: Dict[str, Task] = {}
        for task in tasks or []:
            self._tasks[task.id] = task.model_copy(deep=True)

    def insert(self, task: Task) -> None:
        with self._lock:
            self._tasks[task.id] = task.model_copy(deep=True)

    def get(self, task_id: str) -> Optional[Task]:
        with self._lock:
            task = self._tasks.get(task_id)
            return task.model_copy(deep=True) if task is not None else None

    def mark_complete(self, task_id: str) -> bool:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return False
            task.status = TaskStatus.COMPLETED
            return True

    def add_note(self, task_id: str, text: str) -> bool:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return False
            task.notes.append(text)
            return True

    def list_all(self) -> List[Task]:
        with self._lock:
            return [t.model_copy(deep=True) for t in self._tasks.values()]


class JsonFileTaskStore(TaskStore):
    """
    Task store persisted as a TasksFile JSON document.

    Every mutation is a read-modify-write of the whole file, held under both
    an in-process lock and a lock file, so separate store instances (or
    processes) on the same path never drop each other's writes.
    Retention is unbounded: nothing is ever removed from the file.
    """

    def __init__(self, path: Path, lock_timeout: float = 30.0):
        self._path = Path(path)
        self._lock = threading.RLock()
        self._file_lock = file_lock(self._path, timeout=lock_timeout)

    @property
    def path(self) -> Path:
        return self._path

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._lock, self._file_lock:
            yield

    def _load(self) -> Dict[str, Task]:
        if not self._path.exists():
            return {}
        text = self._path.read_text(encoding="utf-8")
        tasks_file = TasksFile.model_validate_json(text)
        return {t.id: t for t in tasks_file.tasks}

    def _save(self, tasks: Dict[str, Task]) -> None:
        tasks_file = TasksFile(tasks=list(tasks.values()))
        atomic_write_text(self._path, tasks_file.model_dump_json(indent=2))

    def insert(self, task: Task) -> None:
        with self._locked():
            tasks = self._load()
            tasks[task.id] = task
            self._save(tasks)

    def get(self, task_id: str) -> Optional[Task]:
        with self._locked():
            return self._load().get(task_id)

    def mark_complete(self, task_id: str) -> bool:
        with self._locked():
            tasks = self._load()
            task = tasks.get(task_id)
            if task is None:
                return False
            if task.status != TaskStatus.COMPLETED:
                task.status = TaskStatus.COMPLETED
                self._save(tasks)
            return True

    def add_note(self, task_id: str, text: str) -> bool:
        with self._locked():
            tasks = self._load()
            task = tasks.get(task_id)
            if task is None:
                return False
            task.notes.append(text)
            self._save(tasks)
            return True

    def list_all(self) -> List[Task]:
        with self._locked():
            return list(self._load().values())
