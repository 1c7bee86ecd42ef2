# tests/test_json_mirror.py

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from synker.core.errors import InvalidStateError
from synker.store import documents
from synker.store.entity_store import EntityStore
from synker.store.json_mirror import JsonFileMirror
from synker.store.models import Subtask, TimeCapsule, User

from .fakes import make_task


def test_mirror_writes_and_deletes(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    mirror = JsonFileMirror(path)
    assert mirror.is_empty()

    mirror.upsert("task", "t1", {"id": "t1"})
    assert json.loads(path.read_text("utf-8"))["task"] == {"t1": {"id": "t1"}}

    mirror.delete("task", "t1")
    mirror.delete("task", "never-existed")
    assert mirror.is_empty()


def test_load_returns_copies(tmp_path: Path) -> None:
    mirror = JsonFileMirror(tmp_path / "store.json")
    mirror.upsert("user", "u1", {"id": "u1", "task_ids": []})
    snap = mirror.load()
    snap["user"]["u1"]["task_ids"].append("x")
    assert mirror.load()["user"]["u1"]["task_ids"] == []


def test_corrupt_file_starts_empty(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text("{not json", "utf-8")
    assert JsonFileMirror(path).is_empty()


def test_store_survives_restart(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    store = EntityStore(mirror=JsonFileMirror(path))
    uid = store.add_user(User(name="Ann", email="ann@mail.com", password_hash="x"))
    tid = store.add_task(make_task(date(2025, 3, 30), done=True), uid)
    cid = store.add_time_capsule(TimeCapsule(name="Goal", deadline=date(2025, 5, 1)), uid)
    store.add_subtask(Subtask(name="a", is_completed=True), cid)
    store.add_subtask(Subtask(name="b"), cid)
    store.record_streaks(uid, 1, 1)

    restored = EntityStore()
    restored.restore(JsonFileMirror(path).load())

    assert restored.stats() == store.stats()
    user = restored.get_user(uid)
    assert user.task_ids == [tid]
    assert user.max_streak == 1
    assert restored.get_time_capsule(cid).completion_percentage == 50.0


def test_restore_drops_dangling_and_shared_references() -> None:
    ann = User(name="Ann", email="ann@mail.com", password_hash="x")
    bob = User(name="Bob", email="bob@mail.com", password_hash="x")
    task = make_task(date(2025, 3, 30))
    orphan = make_task(date(2025, 3, 30))
    ann.task_ids = [task.id, task.id, "missing"]
    bob.task_ids = [task.id]

    snapshot = {
        documents.USER: {
            ann.id: documents.to_document(ann),
            bob.id: documents.to_document(bob),
        },
        documents.TASK: {
            task.id: documents.to_document(task),
            orphan.id: documents.to_document(orphan),
        },
    }
    store = EntityStore()
    store.restore(snapshot)

    assert store.get_user(ann.id).task_ids == [task.id]
    assert store.get_user(bob.id).task_ids == []
    assert store.get_task(orphan.id) is None
    assert store.stats()["tasks"] == 1


def test_rejected_profile_edit_keeps_user_and_tasks_across_restart(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    store = EntityStore(mirror=JsonFileMirror(path))
    uid = store.add_user(User(name="Ann", email="ann@mail.com", password_hash="x"))
    tid = store.add_task(make_task(date(2025, 3, 30)), uid)

    with pytest.raises(InvalidStateError):
        store.update_user(uid, email="ann@synker.local")
    with pytest.raises(InvalidStateError):
        store.add_user(User(name="", email="bob@mail.com", password_hash="x"))

    restored = EntityStore()
    restored.restore(JsonFileMirror(path).load())

    assert restored.list_user_ids() == [uid]
    assert restored.get_user(uid).email == "ann@mail.com"
    assert restored.get_user(uid).task_ids == [tid]
