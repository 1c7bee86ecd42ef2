# src/synker/streaks/streak_engine.py

from __future__ import annotations

"""
Streak & award engine.

A streak counts consecutive "qualifying days": calendar days that have at
least one task and where every task is completed. The streak is always
recomputed from the task history (never maintained incrementally), so
running it twice over the same data gives the same answer.

- current streak: walk back from the latest qualifying day while days are
  consecutive; 0 if that latest day is older than yesterday
- max streak: never lower than the previously recorded value
- awards: granted from the current streak according to an AwardPolicy,
  at most once per award name
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from ..core.errors import NotFoundError
from ..core.ports import EntityRepo
from ..store.models import Award, Task, utc_now
from .awards import AwardPolicy, earn, eligible_awards

logger = logging.getLogger(__name__)

_ONE_DAY = timedelta(days=1)


@dataclass(frozen=True, slots=True)
class StreakSummary:
    current: int
    maximum: int
    qualifying_days: tuple[date, ...]


@dataclass(frozen=True, slots=True)
class StreakResult:
    user_id: str
    current_streak: int
    max_streak: int
    new_awards: tuple[Award, ...] = field(default_factory=tuple)


def qualifying_days(tasks: Iterable[Task]) -> list[date]:
    """Sorted days that have tasks, all of them completed."""
    by_day: dict[date, bool] = defaultdict(lambda: True)
    for task in tasks:
        by_day[task.date] = by_day[task.date] and task.is_completed
    return sorted(day for day, all_done in by_day.items() if all_done)


def current_streak(days: list[date], today: date) -> int:
    """
    Length of the run of consecutive days ending at the latest qualifying day.

    A run whose latest day is today or yesterday is still alive; anything
    older is broken. `days` must be sorted ascending.
    """
    if not days:
        return 0

    latest = days[-1]
    if latest < today - _ONE_DAY:
        return 0

    streak = 1
    expected = latest - _ONE_DAY
    for day in reversed(days[:-1]):
        if day != expected:
            break
        streak += 1
        expected -= _ONE_DAY
    return streak


def compute_streaks(tasks: Iterable[Task], today: date, previous_max: int = 0) -> StreakSummary:
    days = qualifying_days(tasks)
    current = current_streak(days, today)
    return StreakSummary(
        current=current,
        maximum=max(int(previous_max), current),
        qualifying_days=tuple(days),
    )


class StreakEngine:
    """Reads a user's task history from the store and writes derived streaks and awards back."""

    def __init__(self, store: EntityRepo, *, policy: AwardPolicy = AwardPolicy.EXACT) -> None:
        self._store = store
        self.policy = policy

    def refresh(
        self,
        user_id: str,
        *,
        today: date | None = None,
        now: datetime | None = None,
    ) -> StreakResult:
        today = today or date.today()
        now = now or utc_now()

        # One transaction: the task snapshot and the write-back see the same data.
        with self._store.transaction():
            user = self._store.get_user(user_id)
            if user is None:
                raise NotFoundError("user", user_id)

            summary = compute_streaks(self._store.get_all_tasks(user_id), today, user.max_streak)
            self._store.record_streaks(user_id, summary.current, summary.maximum, modified_at=now)

            held = [a.name for a in user.awards_earned]
            granted: list[Award] = []
            for award in eligible_awards(summary.current, held, self.policy):
                if self._store.add_award_earned(user_id, earn(award, now)):
                    granted.append(award)

        if summary.current != user.current_streak or granted:
            logger.info(
                "Streak refreshed user=%s current=%d max=%d new_awards=%s",
                user_id,
                summary.current,
                summary.maximum,
                [a.name for a in granted],
            )
        return StreakResult(
            user_id=user_id,
            current_streak=summary.current,
            max_streak=summary.maximum,
            new_awards=tuple(granted),
        )

    def refresh_all(self, *, today: date | None = None, now: datetime | None = None) -> list[StreakResult]:
        results: list[StreakResult] = []
        for user_id in self._store.list_user_ids():
            try:
                results.append(self.refresh(user_id, today=today, now=now))
            except NotFoundError:
                # Deleted between listing and refresh.
                logger.debug("refresh_all skipped missing user=%s", user_id)
        return results
