# tests/test_execution_log.py

from __future__ import annotations

import threading
from pathlib import Path

import pytest
from pydantic import ValidationError

from inbox_tasks.execution_log import JsonFileExecutionLog
from inbox_tasks.models import ExecutionLogEntry, RunOutcome


def test_entries_are_read_in_append_order(execution_log) -> None:
    execution_log.append(ExecutionLogEntry(emails_checked=3, tasks_extracted=1, status=RunOutcome.SUCCESS))
    execution_log.append(ExecutionLogEntry(status=RunOutcome.ERROR, error="Gmail unreachable"))

    entries = execution_log.read()

    assert [e.status for e in entries] == [RunOutcome.SUCCESS, RunOutcome.ERROR]
    assert entries[0].emails_checked == 3
    assert entries[1].error == "Gmail unreachable"


def test_read_returns_a_snapshot(execution_log) -> None:
    execution_log.append(ExecutionLogEntry(status=RunOutcome.SUCCESS))
    snapshot = execution_log.read()
    snapshot.clear()
    assert len(execution_log.read()) == 1


def test_entries_are_immutable() -> None:
    entry = ExecutionLogEntry(status=RunOutcome.SUCCESS)
    with pytest.raises(ValidationError):
        entry.tasks_extracted = 5


def test_json_log_persists(tmp_path: Path) -> None:
    path = tmp_path / "execution_log.json"
    JsonFileExecutionLog(path).append(ExecutionLogEntry(emails_checked=2, status=RunOutcome.SUCCESS))

    entries = JsonFileExecutionLog(path).read()
    assert len(entries) == 1
    assert entries[0].emails_checked == 2


def test_json_logs_sharing_a_path_keep_every_entry(tmp_path: Path) -> None:
    path = tmp_path / "execution_log.json"
    sinks = [JsonFileExecutionLog(path), JsonFileExecutionLog(path)]

    def worker(sink: JsonFileExecutionLog) -> None:
        for i in range(25):
            sink.append(ExecutionLogEntry(emails_checked=i, status=RunOutcome.SUCCESS))

    threads = [threading.Thread(target=worker, args=(s,)) for s in sinks]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(JsonFileExecutionLog(path).read()) == 50
    # writes go through a temp file that is always renamed or removed
    assert not list(tmp_path.glob("*.tmp"))
