# tests/test_capsules.py

from __future__ import annotations

from datetime import date

import pytest

from synker.core.errors import InvalidStateError, NotFoundError
from synker.store import documents
from synker.store.entity_store import EntityStore
from synker.store.models import CapsuleFilter, Subtask, TimeCapsule, days_until_deadline


def _capsule(store: EntityStore, owner: str, name: str = "Goal") -> str:
    return store.add_time_capsule(TimeCapsule(name=name, deadline=date(2025, 5, 1)), owner)


def test_percentage_follows_subtasks(store: EntityStore, add_user) -> None:
    uid = add_user()
    cid = _capsule(store, uid)
    assert store.get_time_capsule(cid).completion_percentage == 0.0

    ids = [store.add_subtask(Subtask(name=f"s{i}"), cid) for i in range(3)]
    store.mark_subtask_complete(ids[0], cid)
    assert store.get_time_capsule(cid).completion_percentage == 33.33

    store.mark_subtask_complete(ids[1], cid)
    store.mark_subtask_complete(ids[2], cid)
    capsule = store.get_time_capsule(cid)
    assert capsule.completion_percentage == 100.0
    assert capsule.is_completed

    store.add_subtask(Subtask(name="late addition"), cid)
    assert store.get_time_capsule(cid).completion_percentage == 75.0


def test_delete_last_subtask_resets_percentage(store: EntityStore, add_user, mirror) -> None:
    uid = add_user()
    cid = _capsule(store, uid)
    sid = store.add_subtask(Subtask(name="only", is_completed=True), cid)
    assert store.get_time_capsule(cid).completion_percentage == 100.0

    store.delete_subtask(sid, cid)
    capsule = store.get_time_capsule(cid)
    assert capsule.subtask_ids == []
    assert capsule.completion_percentage == 0.0
    assert mirror.deleted_ids(documents.SUBTASK) == [sid]

    # Already gone: still fine.
    store.delete_subtask(sid, cid)


def test_update_subtask_recomputes(store: EntityStore, add_user) -> None:
    uid = add_user()
    cid = _capsule(store, uid)
    sid = store.add_subtask(Subtask(name="a"), cid)
    store.add_subtask(Subtask(name="b"), cid)

    subtask = store.get_subtask(sid)
    subtask.is_completed = True
    store.update_subtask(subtask, cid)
    assert store.get_time_capsule(cid).completion_percentage == 50.0
    assert [s.name for s in store.get_subtasks(cid)] == ["a", "b"]


def test_subtask_must_belong_to_capsule(store: EntityStore, add_user) -> None:
    uid = add_user()
    first = _capsule(store, uid, "first")
    second = _capsule(store, uid, "second")
    sid = store.add_subtask(Subtask(name="a"), first)

    with pytest.raises(InvalidStateError):
        store.mark_subtask_complete(sid, second)
    with pytest.raises(InvalidStateError):
        store.delete_subtask(sid, second)
    with pytest.raises(NotFoundError):
        store.add_subtask(Subtask(name="x"), "missing")
    assert store.get_subtask(sid) is not None


def test_mark_subtask_complete_twice_is_invalid(store: EntityStore, add_user) -> None:
    uid = add_user()
    cid = _capsule(store, uid)
    sid = store.add_subtask(Subtask(name="a"), cid)
    store.mark_subtask_complete(sid, cid)
    with pytest.raises(InvalidStateError):
        store.mark_subtask_complete(sid, cid)


def test_update_time_capsule_keeps_store_maintained_fields(store: EntityStore, add_user) -> None:
    uid = add_user()
    cid = _capsule(store, uid)
    store.add_subtask(Subtask(name="a", is_completed=True), cid)

    edited = store.get_time_capsule(cid)
    edited.name = "Renamed"
    edited.subtask_ids = []
    edited.completion_percentage = 3.0
    store.update_time_capsule(edited)

    capsule = store.get_time_capsule(cid)
    assert capsule.name == "Renamed"
    assert len(capsule.subtask_ids) == 1
    assert capsule.completion_percentage == 100.0


def test_delete_time_capsule_cascades(store: EntityStore, add_user) -> None:
    uid = add_user()
    other = add_user()
    cid = _capsule(store, uid)
    sids = [store.add_subtask(Subtask(name=n), cid) for n in ("a", "b")]

    with pytest.raises(InvalidStateError):
        store.delete_time_capsule(cid, other)

    store.delete_time_capsule(cid, uid)
    assert store.get_time_capsule(cid) is None
    assert all(store.get_subtask(s) is None for s in sids)
    assert store.get_user(uid).capsule_ids == []
    store.delete_time_capsule(cid, uid)


def test_capsule_filters(store: EntityStore, add_user) -> None:
    uid = add_user()
    fresh = _capsule(store, uid, "fresh")
    store.add_subtask(Subtask(name="todo"), fresh)

    half = _capsule(store, uid, "half")
    store.add_subtask(Subtask(name="a", is_completed=True), half)
    store.add_subtask(Subtask(name="b"), half)

    done = _capsule(store, uid, "done")
    store.add_subtask(Subtask(name="a", is_completed=True), done)

    def names(f: CapsuleFilter) -> list[str]:
        return [c.name for c in store.get_all_time_capsules(uid, f)]

    assert names(CapsuleFilter.ALL) == ["fresh", "half", "done"]
    assert names(CapsuleFilter.ACTIVE) == ["half"]
    assert names(CapsuleFilter.COMPLETED) == ["done"]


def test_days_until_deadline() -> None:
    capsule = TimeCapsule(name="Goal", deadline=date(2025, 4, 10))
    assert days_until_deadline(capsule, date(2025, 3, 31)) == 10
    assert days_until_deadline(capsule, date(2025, 4, 12)) == -2
