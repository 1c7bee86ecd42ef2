# src/synker/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the document mirror and reminder delivery swappable and makes testing easier.
"""

from contextlib import AbstractContextManager
from datetime import date, datetime
from typing import Any, Awaitable, Protocol

Document = dict[str, Any]
# JSON-compatible mapping of one entity, see store/documents.py.


class StoreMirror(Protocol):
    """
    Remote persistence/sync side: receives every committed store mutation.

    The store never depends on the mirror being reachable; failures are
    logged by the caller and the local state stays authoritative.
    """

    def upsert(self, collection: str, doc_id: str, document: Document) -> None: ...
    def delete(self, collection: str, doc_id: str) -> None: ...


class ReminderNotifier(Protocol):
    """Delivery side for task reminders (push service, console, ...)."""

    def send_reminder(self, reminder: Any) -> Awaitable[None]: ...


class EntityRepo(Protocol):
    # Streak engine API
    def transaction(self) -> AbstractContextManager[Any]: ...
    def get_user(self, user_id: str) -> Any | None: ...
    def list_user_ids(self) -> list[str]: ...
    def get_all_tasks(self, user_id: str) -> list[Any]: ...
    def record_streaks(
            self,
            user_id: str,
            current: int,
            maximum: int,
            *,
            modified_at: datetime | None = None,
    ) -> None: ...
    def add_award_earned(self, user_id: str, award: Any) -> bool: ...

    # Reminder scheduler API
    def get_pending_tasks(self, user_id: str) -> list[Any]: ...
    def get_tasks_by_date(self, user_id: str, day: date) -> list[Any]: ...
