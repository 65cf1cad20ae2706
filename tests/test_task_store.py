# tests/test_task_store.py

from __future__ import annotations

import threading
from pathlib import Path

from inbox_tasks.models import TaskStatus
from inbox_tasks.task_store import JsonFileTaskStore


def test_insert_and_get(store, make_task) -> None:
    task = make_task()
    store.insert(task)

    assert store.get(task.id) == task
    assert store.get("missing") is None


def test_insert_replaces_same_id(store, make_task) -> None:
    store.insert(make_task(description="first"))
    store.insert(make_task(description="second"))

    tasks = store.list_all()
    assert len(tasks) == 1
    assert tasks[0].description == "second"


def test_two_tasks_may_share_a_source_message(store, make_task) -> None:
    store.insert(make_task(task_id="task-m1-1", email_id="m1"))
    store.insert(make_task(task_id="task-m1-2", email_id="m1"))
    store.insert(make_task(task_id="task-m2-1", email_id="m2"))

    assert {t.id for t in store.find_by_message("m1")} == {"task-m1-1", "task-m1-2"}
    assert store.find_by_message("m3") == []


def test_mark_complete_is_idempotent(store, make_task) -> None:
    task = make_task()
    store.insert(task)

    assert store.mark_complete(task.id) is True
    assert store.mark_complete(task.id) is True
    assert store.get(task.id).status == TaskStatus.COMPLETED


def test_unknown_id_is_a_negative_result(store, make_task) -> None:
    task = make_task()
    store.insert(task)

    assert store.mark_complete("nope") is False
    assert store.add_note("nope", "hello") is False
    assert store.list_all() == [task]


def test_notes_are_append_only(store, make_task) -> None:
    task = make_task(notes=["context"])
    store.insert(task)

    for note in ("one", "two", "three"):
        assert store.add_note(task.id, note) is True

    assert store.get(task.id).notes == ["context", "one", "two", "three"]


def test_returned_tasks_are_copies(store, make_task) -> None:
    task = make_task()
    store.insert(task)

    fetched = store.get(task.id)
    fetched.notes.append("sneaky")
    fetched.status = TaskStatus.COMPLETED
    task.notes.append("also sneaky")

    stored = store.get(task.id)
    assert stored.notes == [""]
    assert stored.status == TaskStatus.PENDING


def test_concurrent_inserts_keep_every_task(store, make_task) -> None:
    def worker(prefix: str) -> None:
        for i in range(20):
            store.insert(make_task(task_id=f"task-{prefix}-{i}", email_id=prefix))

    threads = [threading.Thread(target=worker, args=(p,)) for p in ("a", "b", "c")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store.list_all()) == 60


def test_json_store_persists_across_instances(tmp_path: Path, make_task) -> None:
    path = tmp_path / "nested" / "tasks.json"
    first = JsonFileTaskStore(path)
    first.insert(make_task())
    first.add_note("task-m1-1", "called back")
    first.mark_complete("task-m1-1")

    second = JsonFileTaskStore(path)
    task = second.get("task-m1-1")
    assert task.status == TaskStatus.COMPLETED
    assert task.notes == ["", "called back"]


def test_json_store_starts_empty_without_file(tmp_path: Path) -> None:
    store = JsonFileTaskStore(tmp_path / "tasks.json")
    assert store.list_all() == []
    assert store.mark_complete("x") is False
    assert not (tmp_path / "tasks.json").exists()


def test_json_stores_sharing_a_path_keep_every_task(tmp_path: Path, make_task) -> None:
    path = tmp_path / "tasks.json"
    stores = [JsonFileTaskStore(path), JsonFileTaskStore(path)]

    def worker(store: JsonFileTaskStore, prefix: str) -> None:
        for i in range(50):
            store.insert(make_task(task_id=f"task-{prefix}-{i}", email_id=prefix))

    threads = [
        threading.Thread(target=worker, args=(s, p)) for s, p in zip(stores, ("a", "b"))
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(JsonFileTaskStore(path).list_all()) == 100
    assert not list(tmp_path.glob("*.tmp"))
