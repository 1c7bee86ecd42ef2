# src/synker/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the entity store, its JSON mirror and the streak engine into AppState,
- restores the last snapshot or seeds demo data.
"""

from __future__ import annotations

import logging
from datetime import date, time, timedelta

from ..config import get_settings
from ..core.state import AppState
from ..store.entity_store import EntityStore
from ..store.json_mirror import JsonFileMirror
from ..store.models import (
    AlertLeadTime,
    Category,
    Priority,
    Subtask,
    Task,
    TimeCapsule,
    User,
    UserSettings,
    Usage,
)
from ..streaks.awards import AwardPolicy
from ..streaks.streak_engine import StreakEngine

logger = logging.getLogger(__name__)

SAMPLE_EMAIL = "a@gmail.com"


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.snapshot_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, with_mirror: bool = True) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    mirror: JsonFileMirror | None = None
    if with_mirror:
        _ensure_local_dirs(settings)
        mirror = JsonFileMirror(settings.snapshot_path)

    store = EntityStore(mirror=mirror)
    if mirror is not None and not mirror.is_empty():
        store.restore(mirror.load())

    policy = AwardPolicy.from_config(getattr(settings, "award_policy", None))
    state = AppState(
        settings=settings,
        store=store,
        streaks=StreakEngine(store, policy=policy),
        mirror=mirror,
    )

    if not store.list_user_ids() and getattr(settings, "seed_sample_data", False):
        state.active_user_id = seed_sample_data(store)
    elif store.list_user_ids():
        state.active_user_id = store.list_user_ids()[0]

    logger.info("State ready stats=%s policy=%s", store.stats(), policy.value)
    return state


def _task(
    name: str,
    description: str,
    start: time,
    end: time,
    day: date,
    *,
    priority: Priority = Priority.LOW,
    alert: AlertLeadTime = AlertLeadTime.NONE,
    category: Category = Category.OTHERS,
    done: bool = False,
) -> Task:
    return Task(
        name=name,
        description=description,
        start_time=start,
        end_time=end,
        date=day,
        priority=priority,
        alert=alert,
        category=category,
        is_completed=done,
    )


def seed_sample_data(store: EntityStore, *, today: date | None = None) -> str:
    """Demo user with a short streak, an overdue task and three capsules. Returns the user id."""
    today = today or date.today()

    user = User(
        name="John Doe",
        email=SAMPLE_EMAIL,
        password_hash="!",
        settings=UserSettings(
            usage=Usage.PERSONAL,
            bedtime="22:00",
            wake_up_time="06:00",
            notifications_enabled=True,
            profile_picture="person.fill",
        ),
    )
    user_id = store.add_user(user)

    tasks = [
        _task(
            "Morning Workout",
            "30-minute cardio session",
            time(6, 0),
            time(6, 30),
            today,
            alert=AlertLeadTime.FIVE_MINUTES,
            category=Category.SPORTS,
            done=True,
        ),
        _task(
            "Team Meeting",
            "Weekly project status update",
            time(10, 0),
            time(11, 0),
            today,
            priority=Priority.MEDIUM,
            alert=AlertLeadTime.TEN_MINUTES,
            category=Category.MEETINGS,
        ),
        _task(
            "Code Review",
            "Review pull requests and provide feedback",
            time(15, 0),
            time(16, 0),
            today - timedelta(days=1),
            priority=Priority.HIGH,
            alert=AlertLeadTime.FIFTEEN_MINUTES,
            category=Category.MEETINGS,
            done=True,
        ),
        _task(
            "Evening Jog",
            "Run 5km in the park",
            time(18, 30),
            time(19, 0),
            today - timedelta(days=1),
            priority=Priority.MEDIUM,
            alert=AlertLeadTime.TEN_MINUTES,
            category=Category.SPORTS,
            done=True,
        ),
        _task(
            "Read a Book",
            "Read at least 20 pages of a self-improvement book",
            time(21, 0),
            time(21, 30),
            today - timedelta(days=2),
            alert=AlertLeadTime.FIVE_MINUTES,
            category=Category.HABITS,
            done=True,
        ),
        _task(
            "Lunch Break",
            "Have a healthy meal and relax",
            time(13, 0),
            time(13, 30),
            today - timedelta(days=3),
            category=Category.HABITS,
            done=True,
        ),
        _task(
            "Project Work",
            "Weekly project status update",
            time(22, 0),
            time(23, 0),
            today - timedelta(days=10),
            priority=Priority.MEDIUM,
            alert=AlertLeadTime.TEN_MINUTES,
        ),
    ]
    for task in tasks:
        store.add_task(task, user_id)

    capsules = [
        (
            TimeCapsule(
                name="Learn Swift",
                deadline=today + timedelta(days=30),
                priority=Priority.LOW,
                description="Master Swift programming language basics",
                category=Category.STUDY,
            ),
            [
                Subtask(name="Learn variables and constants", description="Variables and constants."),
                Subtask(name="Learn data types", description="Data types."),
                Subtask(name="Learn control flow", description="Control flow."),
            ],
        ),
        (
            TimeCapsule(
                name="Complete the iOS project",
                deadline=today + timedelta(days=20),
                priority=Priority.HIGH,
                description="Complete the iOS project and submit it.",
                category=Category.WORK,
            ),
            [
                Subtask(name="CRUD operations for task", is_completed=True),
                Subtask(name="Read operations for capsule", is_completed=True),
                Subtask(name="CRUD operations for capsule"),
                Subtask(name="Awards screen and awarding part"),
            ],
        ),
        (
            TimeCapsule(
                name="Bhangra Performance",
                deadline=today + timedelta(days=60),
                priority=Priority.MEDIUM,
                description="Learn Bhangra and perform at the ceremony.",
                category=Category.OTHERS,
            ),
            [
                Subtask(name="Song 1", description="Performance on Song 1.", is_completed=True),
                Subtask(name="Song 2", description="Performance on Song 2.", is_completed=True),
            ],
        ),
    ]
    for capsule, subtasks in capsules:
        capsule_id = store.add_time_capsule(capsule, user_id)
        for subtask in subtasks:
            store.add_subtask(subtask, capsule_id)

    logger.info("Seeded sample data user=%s", user_id)
    return user_id
