# src/synker/store/documents.py

"""
Document schemas for mirroring store entities to a document database.

Each Pydantic model maps one entity field-for-field; the collection name is
given by COLLECTIONS. Ids are strings, dates and timestamps are ISO values.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, List, Optional

from pydantic import BaseModel, EmailStr, Field, TypeAdapter

from .models import (
    AlertLeadTime,
    AwardEarned,
    Category,
    Priority,
    Subtask,
    Task,
    TimeCapsule,
    Usage,
    User,
    UserSettings,
)

USER = "user"
TASK = "task"
TIME_CAPSULE = "time_capsule"
SUBTASK = "subtask"

COLLECTIONS = (USER, TASK, TIME_CAPSULE, SUBTASK)

_EMAIL = TypeAdapter(EmailStr)


def check_email(email: str) -> str:
    """Normalized address, or ValidationError for anything UserDocument would reject."""
    return str(_EMAIL.validate_python(email))


class UserSettingsDocument(BaseModel):
    usage: Usage = Usage.PERSONAL
    bedtime: str = "22:00"
    wake_up_time: str = "06:00"
    notifications_enabled: bool = True
    profile_picture: Optional[str] = None


class AwardEarnedDocument(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    date_earned: dt.datetime


class UserDocument(BaseModel):
    """
    Users collection schema
    Collection: "user"
    """

    id: str
    name: str = Field(..., min_length=1)
    email: EmailStr = Field(..., description="Unique lookup key")
    password_hash: str
    phone: Optional[str] = None
    task_ids: List[str] = []
    capsule_ids: List[str] = []
    current_streak: int = Field(0, ge=0)
    max_streak: int = Field(0, ge=0)
    awards_earned: List[AwardEarnedDocument] = []
    settings: Optional[UserSettingsDocument] = None
    last_modified: dt.datetime


class TaskDocument(BaseModel):
    """
    Tasks collection schema
    Collection: "task"
    """

    id: str
    name: str = Field(..., min_length=1)
    description: str = ""
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    priority: Priority = Priority.MEDIUM
    is_completed: bool = False
    alert: AlertLeadTime = AlertLeadTime.NONE
    category: Category = Category.OTHERS
    other_category: Optional[str] = None


class TimeCapsuleDocument(BaseModel):
    """
    Time capsules (goals) collection schema
    Collection: "time_capsule"
    """

    id: str
    name: str = Field(..., min_length=1)
    deadline: dt.date
    priority: Priority = Priority.MEDIUM
    description: str = ""
    category: Category = Category.OTHERS
    completion_percentage: float = Field(0.0, ge=0.0, le=100.0)
    subtask_ids: List[str] = []


class SubtaskDocument(BaseModel):
    """
    Subtasks collection schema
    Collection: "subtask"
    """

    id: str
    name: str = Field(..., min_length=1)
    description: str = ""
    is_completed: bool = False


def _user_doc(user: User) -> UserDocument:
    settings = None
    if user.settings is not None:
        s = user.settings
        settings = UserSettingsDocument(
            usage=s.usage,
            bedtime=s.bedtime,
            wake_up_time=s.wake_up_time,
            notifications_enabled=s.notifications_enabled,
            profile_picture=s.profile_picture,
        )
    return UserDocument(
        id=user.id,
        name=user.name,
        email=user.email,
        password_hash=user.password_hash,
        phone=user.phone,
        task_ids=list(user.task_ids),
        capsule_ids=list(user.capsule_ids),
        current_streak=user.current_streak,
        max_streak=user.max_streak,
        awards_earned=[
            AwardEarnedDocument(
                id=a.id,
                name=a.name,
                description=a.description,
                icon=a.icon,
                date_earned=a.date_earned,
            )
            for a in user.awards_earned
        ],
        settings=settings,
        last_modified=user.last_modified,
    )


def to_document(entity: User | Task | TimeCapsule | Subtask) -> dict[str, Any]:
    """Serialize an entity into a JSON-compatible document."""
    if isinstance(entity, User):
        doc: BaseModel = _user_doc(entity)
    elif isinstance(entity, Task):
        doc = TaskDocument(
            id=entity.id,
            name=entity.name,
            description=entity.description,
            date=entity.date,
            start_time=entity.start_time,
            end_time=entity.end_time,
            priority=entity.priority,
            is_completed=entity.is_completed,
            alert=entity.alert,
            category=entity.category,
            other_category=entity.other_category,
        )
    elif isinstance(entity, TimeCapsule):
        doc = TimeCapsuleDocument(
            id=entity.id,
            name=entity.name,
            deadline=entity.deadline,
            priority=entity.priority,
            description=entity.description,
            category=entity.category,
            completion_percentage=entity.completion_percentage,
            subtask_ids=list(entity.subtask_ids),
        )
    elif isinstance(entity, Subtask):
        doc = SubtaskDocument(
            id=entity.id,
            name=entity.name,
            description=entity.description,
            is_completed=entity.is_completed,
        )
    else:
        raise TypeError(f"unsupported entity type: {type(entity).__name__}")
    return doc.model_dump(mode="json")


def collection_for(entity: User | Task | TimeCapsule | Subtask) -> str:
    if isinstance(entity, User):
        return USER
    if isinstance(entity, Task):
        return TASK
    if isinstance(entity, TimeCapsule):
        return TIME_CAPSULE
    if isinstance(entity, Subtask):
        return SUBTASK
    raise TypeError(f"unsupported entity type: {type(entity).__name__}")


def user_from_document(raw: dict[str, Any]) -> User:
    doc = UserDocument.model_validate(raw)
    settings = None
    if doc.settings is not None:
        settings = UserSettings(**doc.settings.model_dump())
    return User(
        id=doc.id,
        name=doc.name,
        email=str(doc.email),
        password_hash=doc.password_hash,
        phone=doc.phone,
        task_ids=list(doc.task_ids),
        capsule_ids=list(doc.capsule_ids),
        current_streak=doc.current_streak,
        max_streak=doc.max_streak,
        awards_earned=[AwardEarned(**a.model_dump()) for a in doc.awards_earned],
        settings=settings,
        last_modified=doc.last_modified,
    )


def task_from_document(raw: dict[str, Any]) -> Task:
    return Task(**TaskDocument.model_validate(raw).model_dump())


def time_capsule_from_document(raw: dict[str, Any]) -> TimeCapsule:
    return TimeCapsule(**TimeCapsuleDocument.model_validate(raw).model_dump())


def subtask_from_document(raw: dict[str, Any]) -> Subtask:
    return Subtask(**SubtaskDocument.model_validate(raw).model_dump())
