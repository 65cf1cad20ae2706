"""
Append-only execution log sinks for refresh runs.
"""

import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from .file_io import atomic_write_text, file_lock
from .models import ExecutionLogEntry, ExecutionLogFile

logger = logging.getLogger(__name__)


class ExecutionLogSink(ABC):
    @abstractmethod
    def append(self, entry: ExecutionLogEntry) -> None:
        ...

    @abstractmethod
    def read(self) -> List[ExecutionLogEntry]:
        """Entries in append order."""


class InMemoryExecutionLog(ExecutionLogSink):
    def __init__(self):
        self._lock = threading.Lock()
        self._entries: List[ExecutionLogEntry] = []

    def append(self, entry: ExecutionLogEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def read(self) -> List[ExecutionLogEntry]:
        with self._lock:
            return list(self._entries)


class JsonFileExecutionLog(ExecutionLogSink):
    def __init__(self, path: Path, lock_timeout: float = 30.0):
        self._path = Path(path)
        self._lock = threading.Lock()
        self._file_lock = file_lock(self._path, timeout=lock_timeout)

    def _load(self) -> ExecutionLogFile:
        if not self._path.exists():
            return ExecutionLogFile()
        return ExecutionLogFile.model_validate_json(self._path.read_text(encoding="utf-8"))

    def append(self, entry: ExecutionLogEntry) -> None:
        with self._lock, self._file_lock:
            log_file = self._load()
            log_file.entries.append(entry)
            atomic_write_text(self._path, log_file.model_dump_json(indent=2))

    def read(self) -> List[ExecutionLogEntry]:
        with self._lock, self._file_lock:
            return list(self._load().entries)
