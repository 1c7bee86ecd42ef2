# src/synker/streaks/awards.py

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from enum import StrEnum

from ..store.models import Award, AwardEarned, User, utc_now


class AwardPolicy(StrEnum):
    """
    When a streak award is granted.

    EXACT keeps the historical contract: only a streak of exactly N days
    grants the N-day award, so skipping past N (e.g. after a bulk import)
    never grants it. THRESHOLD grants every award whose length the streak
    has reached.
    """

    EXACT = "exact"
    THRESHOLD = "threshold"

    @classmethod
    def from_config(cls, raw: str | None) -> AwardPolicy:
        if not raw:
            return cls.EXACT
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.EXACT


STREAK_AWARDS: tuple[Award, ...] = (
    Award(
        name="Weekly Streak",
        description="Completed all your tasks 7 days in a row",
        icon="flame",
        streak_days=7,
    ),
    Award(
        name="Monthly Streak",
        description="Completed all your tasks 30 days in a row",
        icon="flame.fill",
        streak_days=30,
    ),
    Award(
        name="Quarterly Streak",
        description="Completed all your tasks 90 days in a row",
        icon="star.fill",
        streak_days=90,
    ),
    Award(
        name="Half-Year Streak",
        description="Completed all your tasks 180 days in a row",
        icon="medal.fill",
        streak_days=180,
    ),
    Award(
        name="Yearly Streak",
        description="Completed all your tasks 365 days in a row",
        icon="trophy.fill",
        streak_days=365,
    ),
)

_BY_DAYS = {a.streak_days: a for a in STREAK_AWARDS}


def award_catalog() -> list[Award]:
    return list(STREAK_AWARDS)


def eligible_awards(
    streak: int,
    held_names: Iterable[str],
    policy: AwardPolicy = AwardPolicy.EXACT,
) -> list[Award]:
    """Awards the streak earns that are not already held, shortest first."""
    held = set(held_names)
    if policy == AwardPolicy.EXACT:
        award = _BY_DAYS.get(streak)
        candidates = [award] if award is not None else []
    else:
        candidates = [a for a in STREAK_AWARDS if a.streak_days <= streak]
    return [a for a in candidates if a.name not in held]


def earn(award: Award, when: datetime | None = None) -> AwardEarned:
    return AwardEarned(
        name=award.name,
        description=award.description,
        icon=award.icon,
        date_earned=when or utc_now(),
    )


def locked_awards(user: User) -> list[Award]:
    """Catalog awards the user has not earned yet."""
    return [a for a in STREAK_AWARDS if not user.has_award(a.name)]
