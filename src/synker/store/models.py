# src/synker/store/models.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time
from enum import StrEnum


def new_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(UTC)


class Priority(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @property
    def sort_order(self) -> int:
        return {Priority.LOW: 1, Priority.MEDIUM: 2, Priority.HIGH: 3}[self]


class AlertLeadTime(StrEnum):
    """How long before a task's start time the reminder fires."""

    NONE = "None"
    FIVE_MINUTES = "5 minutes"
    TEN_MINUTES = "10 minutes"
    FIFTEEN_MINUTES = "15 minutes"
    THIRTY_MINUTES = "30 minutes"
    ONE_HOUR = "1 hour"

    @property
    def minutes(self) -> int:
        return _ALERT_MINUTES[self]


_ALERT_MINUTES = {
    AlertLeadTime.NONE: 0,
    AlertLeadTime.FIVE_MINUTES: 5,
    AlertLeadTime.TEN_MINUTES: 10,
    AlertLeadTime.FIFTEEN_MINUTES: 15,
    AlertLeadTime.THIRTY_MINUTES: 30,
    AlertLeadTime.ONE_HOUR: 60,
}


class Category(StrEnum):
    SPORTS = "Sports"
    STUDY = "Study"
    WORK = "Work"
    MEETINGS = "Meetings"
    HABITS = "Habits"
    GYM = "Gym"
    RELAX = "Relax"
    OTHERS = "Others"


class Usage(StrEnum):
    PERSONAL = "Personal"
    WORK = "Work"
    EDUCATION = "Education"


class CapsuleFilter(StrEnum):
    ALL = "all"
    ACTIVE = "active"  # started but not finished
    COMPLETED = "completed"


@dataclass(slots=True)
class UserSettings:
    usage: Usage = Usage.PERSONAL
    bedtime: str = "22:00"
    wake_up_time: str = "06:00"
    notifications_enabled: bool = True
    profile_picture: str | None = None


@dataclass(slots=True)
class AwardEarned:
    name: str
    description: str
    icon: str
    date_earned: datetime
    id: str = field(default_factory=new_id)


@dataclass(slots=True)
class User:
    name: str
    email: str
    password_hash: str
    phone: str | None = None
    id: str = field(default_factory=new_id)

    # Maintained by the store; callers never edit these lists directly.
    task_ids: list[str] = field(default_factory=list)
    capsule_ids: list[str] = field(default_factory=list)

    current_streak: int = 0
    max_streak: int = 0
    awards_earned: list[AwardEarned] = field(default_factory=list)

    settings: UserSettings | None = None
    last_modified: datetime = field(default_factory=utc_now)

    def has_award(self, name: str) -> bool:
        return any(a.name == name for a in self.awards_earned)


@dataclass(slots=True)
class Task:
    name: str
    date: date
    start_time: time
    end_time: time
    description: str = ""
    priority: Priority = Priority.MEDIUM
    is_completed: bool = False
    alert: AlertLeadTime = AlertLeadTime.NONE
    category: Category = Category.OTHERS
    other_category: str | None = None  # free-text label when category is OTHERS
    id: str = field(default_factory=new_id)

    def starts_at(self) -> datetime:
        """Naive local datetime of the task start."""
        return datetime.combine(self.date, self.start_time)


@dataclass(slots=True)
class Subtask:
    name: str
    description: str = ""
    is_completed: bool = False
    id: str = field(default_factory=new_id)


@dataclass(slots=True)
class TimeCapsule:
    """A longer-horizon goal tracked by the share of its subtasks that are done."""

    name: str
    deadline: date
    priority: Priority = Priority.MEDIUM
    description: str = ""
    category: Category = Category.OTHERS
    completion_percentage: float = 0.0
    subtask_ids: list[str] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    @property
    def is_completed(self) -> bool:
        return self.completion_percentage >= 100.0

    def update_completion_percentage(self, subtasks: list[Subtask]) -> None:
        if not subtasks:
            self.completion_percentage = 0.0
            return
        done = sum(1 for s in subtasks if s.is_completed)
        self.completion_percentage = round(done / len(subtasks) * 100.0, 2)


@dataclass(frozen=True, slots=True)
class Award:
    """Catalog entry: an award any user can earn by reaching a streak length."""

    name: str
    description: str
    icon: str
    streak_days: int


def days_until_deadline(capsule: TimeCapsule, today: date | None = None) -> int:
    """Whole days from today to the capsule deadline (negative once it has passed)."""
    today = today or date.today()
    return (capsule.deadline - today).days
