# src/synker/streaks/streak_api.py

from __future__ import annotations

import logging
from datetime import date

from ..core.errors import InvalidStateError, NotFoundError
from ..core.state import AppState
from .streak_engine import StreakResult

logger = logging.getLogger(__name__)


def complete_task(
    state: AppState,
    task_id: str,
    owner_id: str,
    *,
    today: date | None = None,
) -> StreakResult:
    """
    Convenience helper: mark a task complete, then refresh the owner's streaks.

    The store does not recompute streaks on its own; this is the completion
    path the console (and any other front end) goes through.
    """
    owner = state.store.get_user(owner_id)
    if owner is None:
        raise NotFoundError("user", owner_id)
    if task_id not in owner.task_ids:
        raise InvalidStateError(f"task {task_id} does not belong to user {owner_id}")

    state.store.mark_task_complete(task_id)
    result = state.streaks.refresh(owner_id, today=today)
    for award in result.new_awards:
        logger.info("User %s earned %s", owner_id, award.name)
    return result


def refresh_on_load(state: AppState, user_id: str, *, today: date | None = None) -> StreakResult:
    """Recompute streaks when a user's session starts (app foreground)."""
    return state.streaks.refresh(user_id, today=today)
