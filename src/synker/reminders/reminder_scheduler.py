# src/synker/reminders/reminder_scheduler.py

from __future__ import annotations

"""
Task reminder scheduler.

A small polling loop that:
- reads pending tasks from the store (read-only),
- computes each task's reminder moment (start time minus alert lead time),
- sends reminders whose moment fell inside the last polling window
  via an injected notifier port.

Delivery (push service, console output, ...) belongs to the notifier, not the scheduler.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..core.ports import EntityRepo, ReminderNotifier
from ..store.models import AlertLeadTime, Task

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Reminder:
    """
    What the scheduler wants to deliver.

    The scheduler decides when and with which text; the notifier decides
    where and how to actually deliver it.
    """

    task_id: str
    user_id: str
    deliver_at: datetime
    title: str
    body: str

    @property
    def key(self) -> str:
        # A rescheduled task gets a new key and is reminded again.
        return f"task-{self.task_id}@{self.deliver_at.isoformat()}"


def reminder_at(task: Task) -> datetime:
    """Naive local moment the reminder for this task is due."""
    return task.starts_at() - timedelta(minutes=task.alert.minutes)


def format_start(task: Task) -> str:
    return task.start_time.strftime("%I:%M %p")


def build_reminder(task: Task, user_id: str) -> Reminder:
    start = format_start(task)
    if task.alert == AlertLeadTime.NONE:
        body = f"Task starting now at {start}"
    else:
        body = f"Task starting in {task.alert.value} at {start}"
    return Reminder(
        task_id=task.id,
        user_id=user_id,
        deliver_at=reminder_at(task),
        title=task.name,
        body=body,
    )


def due_reminders(
        store: EntityRepo,
        *,
        since: datetime,
        now: datetime,
        user_ids: list[str] | None = None,
) -> list[Reminder]:
    """Reminders for pending tasks whose moment falls in (since, now], oldest first."""
    out: list[Reminder] = []
    for user_id in user_ids if user_ids is not None else store.list_user_ids():
        user = store.get_user(user_id)
        if user is None:
            continue
        if user.settings is not None and not user.settings.notifications_enabled:
            continue
        for task in store.get_pending_tasks(user_id):
            at = reminder_at(task)
            if since < at <= now:
                out.append(build_reminder(task, user_id))
    out.sort(key=lambda r: r.deliver_at)
    return out


@dataclass(slots=True, frozen=True)
class DispatchReport:
    delivered: int
    failed: tuple[Reminder, ...]


async def dispatch_due_reminders(
        store: EntityRepo,
        notifier: ReminderNotifier,
        *,
        since: datetime,
        now: datetime,
        sent: dict[str, datetime],
) -> DispatchReport:
    """Send every due reminder whose key is not in `sent` yet."""
    try:
        reminders = due_reminders(store, since=since, now=now)
    except Exception:
        logger.exception("due_reminders failed")
        return DispatchReport(delivered=0, failed=())

    delivered = 0
    failed: list[Reminder] = []
    for reminder in reminders:
        if reminder.key in sent:
            continue
        try:
            await notifier.send_reminder(reminder)
        except Exception:
            logger.exception("send_reminder failed task_id=%s", reminder.task_id)
            failed.append(reminder)
            continue
        sent[reminder.key] = reminder.deliver_at
        delivered += 1
        logger.info("Reminder sent task_id=%s user=%s", reminder.task_id, reminder.user_id)
    return DispatchReport(delivered=delivered, failed=tuple(failed))


def advance_window(
        report: DispatchReport,
        *,
        now: datetime,
        sent: dict[str, datetime],
        failures: dict[str, int],
        max_attempts: int,
) -> datetime:
    """
    Record one poll's outcome and return `since` for the next poll.

    Failed reminders keep the window open from the oldest of them, until a
    reminder has failed `max_attempts` times in a row: then it is given up
    (recorded in `sent`) and stops holding the window back.
    `failures` only keeps keys that failed in this poll.
    """
    retrying: list[Reminder] = []
    counts: dict[str, int] = {}
    for reminder in report.failed:
        attempts = failures.get(reminder.key, 0) + 1
        if attempts >= max_attempts:
            logger.warning(
                "Giving up on reminder task_id=%s user=%s after %d attempts",
                reminder.task_id,
                reminder.user_id,
                attempts,
            )
            sent[reminder.key] = reminder.deliver_at
            continue
        counts[reminder.key] = attempts
        retrying.append(reminder)

    failures.clear()
    failures.update(counts)

    if retrying:
        since = min(r.deliver_at for r in retrying) - timedelta(microseconds=1)
    else:
        since = now

    for key in [k for k, at in sent.items() if at <= since]:
        del sent[key]
    return since


async def run_reminder_scheduler(
        store: EntityRepo,
        notifier: ReminderNotifier,
        *,
        interval_seconds: float = 30.0,
        max_attempts: int = 5,
        clock: Callable[[], datetime] = datetime.now,
) -> None:
    """
    Simple polling scheduler.

    Every interval_seconds:
    - compute reminders due since the previous poll (the first poll looks back one interval)
    - send each via notifier.send_reminder(...)
    - retry failed reminders on the next poll, at most max_attempts sends each

    To stop the scheduler, cancel the coroutine/task.
    """
    sleep_s = max(0.5, float(interval_seconds))
    max_attempts = max(1, int(max_attempts))
    sent: dict[str, datetime] = {}
    failures: dict[str, int] = {}
    since = clock() - timedelta(seconds=sleep_s)

    while True:
        now = clock()
        report = await dispatch_due_reminders(store, notifier, since=since, now=now, sent=sent)
        since = advance_window(
            report,
            now=now,
            sent=sent,
            failures=failures,
            max_attempts=max_attempts,
        )
        await asyncio.sleep(sleep_s)
