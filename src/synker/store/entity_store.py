# src/synker/store/entity_store.py

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, TypeVar

from ..core.errors import DuplicateKeyError, InvalidStateError, NotFoundError
from ..core.ports import Document, StoreMirror
from . import documents
from .models import (
    AwardEarned,
    CapsuleFilter,
    Category,
    Priority,
    Subtask,
    Task,
    TimeCapsule,
    User,
    UserSettings,
    utc_now,
)

logger = logging.getLogger(__name__)

_UNSET: Any = object()

T = TypeVar("T")


def _email_key(email: str) -> str:
    return (email or "").strip().lower()


class EntityStore:
    """
    In-memory relational store for users, tasks, time capsules and subtasks.

    Relations are id lists owned by the parent (user -> task/capsule ids,
    capsule -> subtask ids); entities never point back at their owner.

    Thread-safety:
    - one re-entrant lock guards every public method, so cascades and
      id-list maintenance are atomic with respect to other callers
    - transaction() holds the same lock across multi-step read/write sequences

    Entities go in and come out as deep copies; callers can never reach the
    stored objects and bypass the invariants.
    """

    def __init__(self, mirror: StoreMirror | None = None) -> None:
        self._lock = threading.RLock()
        self._users: dict[str, User] = {}
        self._tasks: dict[str, Task] = {}
        self._capsules: dict[str, TimeCapsule] = {}
        self._subtasks: dict[str, Subtask] = {}
        self._mirror = mirror
        logger.info("EntityStore ready mirror=%s", type(mirror).__name__ if mirror else None)

    @contextmanager
    def transaction(self) -> Iterator[EntityStore]:
        with self._lock:
            yield self

    # ---- low-level helpers ----

    @staticmethod
    def _copy(entity: T) -> T:
        return copy.deepcopy(entity)

    def _publish(self, entity: User | Task | TimeCapsule | Subtask) -> None:
        if self._mirror is None:
            return
        try:
            self._mirror.upsert(documents.collection_for(entity), entity.id, documents.to_document(entity))
        except Exception:
            logger.exception("Mirror upsert failed %s id=%s", type(entity).__name__, entity.id)

    def _publish_delete(self, collection: str, doc_id: str) -> None:
        if self._mirror is None:
            return
        try:
            self._mirror.delete(collection, doc_id)
        except Exception:
            logger.exception("Mirror delete failed collection=%s id=%s", collection, doc_id)

    def _require_user(self, user_id: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    def _require_task(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError("task", task_id)
        return task

    def _require_capsule(self, capsule_id: str) -> TimeCapsule:
        capsule = self._capsules.get(capsule_id)
        if capsule is None:
            raise NotFoundError("time_capsule", capsule_id)
        return capsule

    def _email_taken(self, email: str, *, except_user_id: str | None = None) -> bool:
        key = _email_key(email)
        return any(
            _email_key(u.email) == key for uid, u in self._users.items() if uid != except_user_id
        )

    @staticmethod
    def _validate_name(name: str | None) -> None:
        if not name or not name.strip():
            raise InvalidStateError("user name is required")

    @staticmethod
    def _validate_email(email: str | None) -> str:
        """Stripped email; rejects what the user document schema would refuse to mirror."""
        raw = (email or "").strip()
        try:
            documents.check_email(raw)
        except ValueError as e:
            logger.warning("User rejected: invalid email=%r", email)
            raise InvalidStateError(f"invalid email address: {email!r}") from e
        return raw

    @staticmethod
    def _validate_task(task: Task) -> None:
        if not task.name or not task.name.strip():
            raise InvalidStateError("task name is required")
        if task.start_time >= task.end_time:
            raise InvalidStateError(
                f"task start time {task.start_time} must be before end time {task.end_time}"
            )

    def _user_tasks(self, user: User) -> list[Task]:
        return [self._tasks[tid] for tid in user.task_ids if tid in self._tasks]

    def _capsule_subtasks(self, capsule: TimeCapsule) -> list[Subtask]:
        return [self._subtasks[sid] for sid in capsule.subtask_ids if sid in self._subtasks]

    def _recompute_capsule(self, capsule: TimeCapsule) -> None:
        capsule.update_completion_percentage(self._capsule_subtasks(capsule))

    def _drop_capsule(self, capsule_id: str) -> None:
        capsule = self._capsules.pop(capsule_id, None)
        if capsule is None:
            return
        for sid in capsule.subtask_ids:
            if self._subtasks.pop(sid, None) is not None:
                self._publish_delete(documents.SUBTASK, sid)
        self._publish_delete(documents.TIME_CAPSULE, capsule_id)

    # ---- users ----

    def add_user(self, user: User) -> str:
        self._validate_name(user.name)
        email = self._validate_email(user.email)
        if user.current_streak < 0 or user.max_streak < user.current_streak:
            raise InvalidStateError(
                f"invalid streak counters current={user.current_streak} max={user.max_streak}"
            )
        with self._lock:
            if self._email_taken(email):
                logger.warning("add_user rejected: email already registered email=%s", user.email)
                raise DuplicateKeyError(f"email={user.email}")
            if user.id in self._users:
                raise DuplicateKeyError(f"user_id={user.id}")

            stored = self._copy(user)
            stored.name = stored.name.strip()
            stored.email = email
            # Relations are built through add_task/add_time_capsule only.
            stored.task_ids = []
            stored.capsule_ids = []
            self._users[stored.id] = stored
            logger.debug("User added id=%s email=%s", stored.id, stored.email)
            self._publish(stored)
            return stored.id

    def get_user(self, user_id: str) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            return self._copy(user) if user is not None else None

    def find_user_by_email(self, email: str) -> User | None:
        key = _email_key(email)
        with self._lock:
            for user in self._users.values():
                if _email_key(user.email) == key:
                    return self._copy(user)
            return None

    def user_exists(self, email: str) -> bool:
        with self._lock:
            return self._email_taken(email)

    def list_user_ids(self) -> list[str]:
        with self._lock:
            return list(self._users)

    def update_user(
        self,
        user_id: str,
        *,
        name: str | None = None,
        email: str | None = None,
        phone: str | None = _UNSET,
        password_hash: str | None = None,
        settings: UserSettings | None = _UNSET,
    ) -> None:
        """
        Profile edit.

        Task/capsule id lists, streak counters and awards are derived or
        store-maintained and cannot be changed here.
        """
        if name is not None:
            self._validate_name(name)
        if email is not None:
            email = self._validate_email(email)
        with self._lock:
            user = self._require_user(user_id)
            if email is not None and self._email_taken(email, except_user_id=user_id):
                logger.warning("update_user rejected: email already registered email=%s", email)
                raise DuplicateKeyError(f"email={email}")
            if name is not None:
                user.name = name.strip()
            if email is not None:
                user.email = email
            if phone is not _UNSET:
                user.phone = phone
            if password_hash is not None:
                user.password_hash = password_hash
            if settings is not _UNSET:
                user.settings = self._copy(settings)
            user.last_modified = utc_now()
            logger.debug("User updated id=%s", user_id)
            self._publish(user)

    def delete_user(self, user_id: str) -> None:
        """Remove a user with every task, capsule and subtask it owns."""
        with self._lock:
            user = self._require_user(user_id)
            for tid in user.task_ids:
                if self._tasks.pop(tid, None) is not None:
                    self._publish_delete(documents.TASK, tid)
            for cid in user.capsule_ids:
                self._drop_capsule(cid)
            del self._users[user_id]
            logger.info(
                "User deleted id=%s tasks=%d capsules=%d",
                user_id,
                len(user.task_ids),
                len(user.capsule_ids),
            )
            self._publish_delete(documents.USER, user_id)

    # ---- tasks ----

    def add_task(self, task: Task, owner_id: str) -> str:
        self._validate_task(task)
        with self._lock:
            owner = self._users.get(owner_id)
            if owner is None:
                logger.warning("add_task rejected: user not found id=%s", owner_id)
                raise NotFoundError("user", owner_id)
            if task.id in self._tasks:
                raise DuplicateKeyError(f"task_id={task.id}")

            stored = self._copy(task)
            self._tasks[stored.id] = stored
            if stored.id not in owner.task_ids:
                owner.task_ids.append(stored.id)
            logger.debug("Task added id=%s owner=%s date=%s", stored.id, owner_id, stored.date)
            self._publish(stored)
            self._publish(owner)
            return stored.id

    def get_task(self, task_id: str) -> Task | None:
        with self._lock:
            task = self._tasks.get(task_id)
            return self._copy(task) if task is not None else None

    def update_task(self, task: Task) -> None:
        self._validate_task(task)
        with self._lock:
            self._require_task(task.id)
            stored = self._copy(task)
            self._tasks[task.id] = stored
            logger.debug("Task updated id=%s", task.id)
            self._publish(stored)

    def mark_task_complete(self, task_id: str) -> None:
        """
        Set the completion flag.

        Streaks are not recomputed here; callers refresh them through the
        streak engine afterwards.
        """
        with self._lock:
            task = self._require_task(task_id)
            if task.is_completed:
                raise InvalidStateError(f"task already completed: {task_id}")
            task.is_completed = True
            logger.debug("Task completed id=%s", task_id)
            self._publish(task)

    def reschedule_task(self, task_id: str, new_date: date) -> None:
        with self._lock:
            task = self._require_task(task_id)
            task.date = new_date
            logger.debug("Task rescheduled id=%s date=%s", task_id, new_date)
            self._publish(task)

    def delete_task(self, task_id: str, owner_id: str) -> None:
        """
        Remove a task and its id from the owner's list.

        Deleting an id that is already gone succeeds (the owner's list is
        cleaned either way).
        """
        with self._lock:
            owner = self._users.get(owner_id)
            if owner is None:
                logger.warning("delete_task rejected: user not found id=%s", owner_id)
                raise NotFoundError("user", owner_id)
            if task_id in self._tasks and task_id not in owner.task_ids:
                raise InvalidStateError(f"task {task_id} does not belong to user {owner_id}")

            removed = self._tasks.pop(task_id, None) is not None
            owned = task_id in owner.task_ids
            owner.task_ids = [tid for tid in owner.task_ids if tid != task_id]
            logger.debug("Task deleted id=%s owner=%s existed=%s", task_id, owner_id, removed)
            if removed:
                self._publish_delete(documents.TASK, task_id)
            if owned:
                self._publish(owner)

    # ---- task queries ----

    def _query_tasks(self, user_id: str, predicate=None) -> list[Task]:
        with self._lock:
            user = self._require_user(user_id)
            return [
                self._copy(t)
                for t in self._user_tasks(user)
                if predicate is None or predicate(t)
            ]

    def get_all_tasks(self, user_id: str) -> list[Task]:
        return self._query_tasks(user_id)

    def get_tasks_by_date(self, user_id: str, day: date) -> list[Task]:
        return self._query_tasks(user_id, lambda t: t.date == day)

    def get_tasks_by_category(self, user_id: str, category: Category) -> list[Task]:
        return self._query_tasks(user_id, lambda t: t.category == category)

    def get_tasks_by_priority(self, user_id: str, priority: Priority) -> list[Task]:
        return self._query_tasks(user_id, lambda t: t.priority == priority)

    def get_completed_tasks(self, user_id: str) -> list[Task]:
        return self._query_tasks(user_id, lambda t: t.is_completed)

    def get_pending_tasks(self, user_id: str) -> list[Task]:
        return self._query_tasks(user_id, lambda t: not t.is_completed)

    def get_overdue_tasks(self, user_id: str, today: date | None = None) -> list[Task]:
        """Tasks dated before today that are still not completed."""
        today = today or date.today()
        return self._query_tasks(user_id, lambda t: t.date < today and not t.is_completed)

    # ---- time capsules ----

    def add_time_capsule(self, capsule: TimeCapsule, owner_id: str) -> str:
        if not capsule.name or not capsule.name.strip():
            raise InvalidStateError("time capsule name is required")
        with self._lock:
            owner = self._users.get(owner_id)
            if owner is None:
                logger.warning("add_time_capsule rejected: user not found id=%s", owner_id)
                raise NotFoundError("user", owner_id)
            if capsule.id in self._capsules:
                raise DuplicateKeyError(f"capsule_id={capsule.id}")

            stored = self._copy(capsule)
            # Subtasks are attached through add_subtask only.
            stored.subtask_ids = []
            stored.completion_percentage = 0.0
            self._capsules[stored.id] = stored
            if stored.id not in owner.capsule_ids:
                owner.capsule_ids.append(stored.id)
            logger.debug("TimeCapsule added id=%s owner=%s", stored.id, owner_id)
            self._publish(stored)
            self._publish(owner)
            return stored.id

    def get_time_capsule(self, capsule_id: str) -> TimeCapsule | None:
        with self._lock:
            capsule = self._capsules.get(capsule_id)
            return self._copy(capsule) if capsule is not None else None

    def update_time_capsule(self, capsule: TimeCapsule) -> None:
        """Replace a capsule's own fields; its subtask list and percentage stay store-maintained."""
        if not capsule.name or not capsule.name.strip():
            raise InvalidStateError("time capsule name is required")
        with self._lock:
            current = self._require_capsule(capsule.id)
            stored = self._copy(capsule)
            stored.subtask_ids = list(current.subtask_ids)
            self._recompute_capsule(stored)
            self._capsules[stored.id] = stored
            logger.debug("TimeCapsule updated id=%s", stored.id)
            self._publish(stored)

    def delete_time_capsule(self, capsule_id: str, owner_id: str) -> None:
        with self._lock:
            owner = self._users.get(owner_id)
            if owner is None:
                logger.warning("delete_time_capsule rejected: user not found id=%s", owner_id)
                raise NotFoundError("user", owner_id)
            if capsule_id in self._capsules and capsule_id not in owner.capsule_ids:
                raise InvalidStateError(f"capsule {capsule_id} does not belong to user {owner_id}")

            self._drop_capsule(capsule_id)
            owned = capsule_id in owner.capsule_ids
            owner.capsule_ids = [cid for cid in owner.capsule_ids if cid != capsule_id]
            logger.debug("TimeCapsule deleted id=%s owner=%s", capsule_id, owner_id)
            if owned:
                self._publish(owner)

    def get_all_time_capsules(
        self,
        user_id: str,
        capsule_filter: CapsuleFilter = CapsuleFilter.ALL,
    ) -> list[TimeCapsule]:
        with self._lock:
            user = self._require_user(user_id)
            out: list[TimeCapsule] = []
            for cid in user.capsule_ids:
                capsule = self._capsules.get(cid)
                if capsule is None:
                    continue
                pct = capsule.completion_percentage
                if capsule_filter == CapsuleFilter.ACTIVE and not (0.0 < pct < 100.0):
                    continue
                if capsule_filter == CapsuleFilter.COMPLETED and pct < 100.0:
                    continue
                out.append(self._copy(capsule))
            return out

    # ---- subtasks ----

    def _require_member(self, capsule: TimeCapsule, subtask_id: str) -> Subtask:
        subtask = self._subtasks.get(subtask_id)
        if subtask is None:
            raise NotFoundError("subtask", subtask_id)
        if subtask_id not in capsule.subtask_ids:
            raise InvalidStateError(f"subtask {subtask_id} does not belong to capsule {capsule.id}")
        return subtask

    def add_subtask(self, subtask: Subtask, capsule_id: str) -> str:
        if not subtask.name or not subtask.name.strip():
            raise InvalidStateError("subtask name is required")
        with self._lock:
            capsule = self._capsules.get(capsule_id)
            if capsule is None:
                logger.warning("add_subtask rejected: time capsule not found id=%s", capsule_id)
                raise NotFoundError("time_capsule", capsule_id)
            if subtask.id in self._subtasks:
                raise DuplicateKeyError(f"subtask_id={subtask.id}")

            stored = self._copy(subtask)
            self._subtasks[stored.id] = stored
            capsule.subtask_ids.append(stored.id)
            self._recompute_capsule(capsule)
            logger.debug(
                "Subtask added id=%s capsule=%s pct=%.2f",
                stored.id,
                capsule_id,
                capsule.completion_percentage,
            )
            self._publish(stored)
            self._publish(capsule)
            return stored.id

    def get_subtask(self, subtask_id: str) -> Subtask | None:
        with self._lock:
            subtask = self._subtasks.get(subtask_id)
            return self._copy(subtask) if subtask is not None else None

    def get_subtasks(self, capsule_id: str) -> list[Subtask]:
        with self._lock:
            capsule = self._require_capsule(capsule_id)
            return [self._copy(s) for s in self._capsule_subtasks(capsule)]

    def update_subtask(self, subtask: Subtask, capsule_id: str) -> None:
        if not subtask.name or not subtask.name.strip():
            raise InvalidStateError("subtask name is required")
        with self._lock:
            capsule = self._require_capsule(capsule_id)
            self._require_member(capsule, subtask.id)
            stored = self._copy(subtask)
            self._subtasks[stored.id] = stored
            self._recompute_capsule(capsule)
            logger.debug("Subtask updated id=%s capsule=%s", stored.id, capsule_id)
            self._publish(stored)
            self._publish(capsule)

    def mark_subtask_complete(self, subtask_id: str, capsule_id: str) -> None:
        with self._lock:
            capsule = self._require_capsule(capsule_id)
            subtask = self._require_member(capsule, subtask_id)
            if subtask.is_completed:
                raise InvalidStateError(f"subtask already completed: {subtask_id}")
            subtask.is_completed = True
            self._recompute_capsule(capsule)
            logger.debug(
                "Subtask completed id=%s capsule=%s pct=%.2f",
                subtask_id,
                capsule_id,
                capsule.completion_percentage,
            )
            self._publish(subtask)
            self._publish(capsule)

    def delete_subtask(self, subtask_id: str, capsule_id: str) -> None:
        with self._lock:
            capsule = self._require_capsule(capsule_id)
            if subtask_id in self._subtasks and subtask_id not in capsule.subtask_ids:
                raise InvalidStateError(f"subtask {subtask_id} does not belong to capsule {capsule_id}")

            if self._subtasks.pop(subtask_id, None) is not None:
                self._publish_delete(documents.SUBTASK, subtask_id)
            capsule.subtask_ids = [sid for sid in capsule.subtask_ids if sid != subtask_id]
            self._recompute_capsule(capsule)
            logger.debug("Subtask deleted id=%s capsule=%s", subtask_id, capsule_id)
            self._publish(capsule)

    # ---- streak / award write-back ----

    def record_streaks(
        self,
        user_id: str,
        current: int,
        maximum: int,
        *,
        modified_at: datetime | None = None,
    ) -> None:
        if current < 0 or maximum < 0 or current > maximum:
            raise InvalidStateError(f"invalid streak counters current={current} max={maximum}")
        with self._lock:
            user = self._require_user(user_id)
            if maximum < user.max_streak:
                raise InvalidStateError(
                    f"max streak cannot decrease ({user.max_streak} -> {maximum}) user={user_id}"
                )
            changed = (user.current_streak, user.max_streak) != (current, maximum)
            user.current_streak = current
            user.max_streak = maximum
            user.last_modified = modified_at or utc_now()
            if changed:
                logger.debug("Streaks recorded user=%s current=%d max=%d", user_id, current, maximum)
            self._publish(user)

    def add_award_earned(self, user_id: str, award: AwardEarned) -> bool:
        """Append an earned award; False if the user already holds one with that name."""
        with self._lock:
            user = self._require_user(user_id)
            if user.has_award(award.name):
                return False
            user.awards_earned.append(self._copy(award))
            logger.info("Award earned user=%s award=%s", user_id, award.name)
            self._publish(user)
            return True

    # ---- stats / restore ----

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "users": len(self._users),
                "tasks": len(self._tasks),
                "time_capsules": len(self._capsules),
                "subtasks": len(self._subtasks),
            }

    def restore(self, snapshot: dict[str, dict[str, Document]]) -> None:
        """
        Replace the whole store content with a snapshot of documents
        ({collection: {id: document}}), as produced by a mirror.

        Id references that point at missing documents are dropped and
        capsule percentages are recomputed. Nothing is published back.
        """
        users = {
            doc_id: documents.user_from_document(doc)
            for doc_id, doc in (snapshot.get(documents.USER) or {}).items()
        }
        tasks = {
            doc_id: documents.task_from_document(doc)
            for doc_id, doc in (snapshot.get(documents.TASK) or {}).items()
        }
        capsules = {
            doc_id: documents.time_capsule_from_document(doc)
            for doc_id, doc in (snapshot.get(documents.TIME_CAPSULE) or {}).items()
        }
        subtasks = {
            doc_id: documents.subtask_from_document(doc)
            for doc_id, doc in (snapshot.get(documents.SUBTASK) or {}).items()
        }

        # Each child keeps its first owner; unreferenced children are dropped.
        dropped = 0
        owned_tasks: set[str] = set()
        owned_capsules: set[str] = set()
        for user in users.values():
            before = len(user.task_ids) + len(user.capsule_ids)
            user.task_ids = [
                tid for tid in dict.fromkeys(user.task_ids) if tid in tasks and tid not in owned_tasks
            ]
            user.capsule_ids = [
                cid
                for cid in dict.fromkeys(user.capsule_ids)
                if cid in capsules and cid not in owned_capsules
            ]
            owned_tasks.update(user.task_ids)
            owned_capsules.update(user.capsule_ids)
            dropped += before - len(user.task_ids) - len(user.capsule_ids)
        tasks = {tid: t for tid, t in tasks.items() if tid in owned_tasks}
        capsules = {cid: c for cid, c in capsules.items() if cid in owned_capsules}

        owned_subtasks: set[str] = set()
        for capsule in capsules.values():
            before = len(capsule.subtask_ids)
            capsule.subtask_ids = [
                sid
                for sid in dict.fromkeys(capsule.subtask_ids)
                if sid in subtasks and sid not in owned_subtasks
            ]
            owned_subtasks.update(capsule.subtask_ids)
            dropped += before - len(capsule.subtask_ids)
            capsule.update_completion_percentage([subtasks[sid] for sid in capsule.subtask_ids])
        subtasks = {sid: s for sid, s in subtasks.items() if sid in owned_subtasks}

        with self._lock:
            self._users = users
            self._tasks = tasks
            self._capsules = capsules
            self._subtasks = subtasks
        logger.info(
            "EntityStore restored users=%d tasks=%d capsules=%d subtasks=%d dropped_refs=%d",
            len(users),
            len(tasks),
            len(capsules),
            len(subtasks),
            dropped,
        )
