# tests/test_streak_engine.py

from __future__ import annotations

from datetime import date, timedelta

import pytest

from synker.core.errors import InvalidStateError, NotFoundError
from synker.store.entity_store import EntityStore
from synker.streaks.awards import AwardPolicy
from synker.streaks.streak_api import complete_task
from synker.streaks.streak_engine import (
    StreakEngine,
    compute_streaks,
    current_streak,
    qualifying_days,
)

from .fakes import make_task

TODAY = date(2025, 3, 30)


def _days(*offsets: int) -> list[date]:
    return sorted(TODAY - timedelta(days=o) for o in offsets)


def test_qualifying_days_need_every_task_done() -> None:
    tasks = [
        make_task(TODAY, done=True),
        make_task(TODAY, done=False),
        make_task(TODAY - timedelta(days=1), done=True),
    ]
    assert qualifying_days(tasks) == [TODAY - timedelta(days=1)]


def test_four_consecutive_days_ending_today() -> None:
    assert current_streak(_days(0, 1, 2, 3), TODAY) == 4


def test_streak_ending_yesterday_is_still_alive() -> None:
    assert current_streak(_days(1, 2), TODAY) == 2


def test_streak_older_than_yesterday_is_broken() -> None:
    assert current_streak(_days(3, 4, 5), TODAY) == 0
    assert current_streak([], TODAY) == 0


def test_gap_stops_the_walk_back() -> None:
    assert current_streak(_days(0, 1, 3, 4, 5), TODAY) == 2


def test_mixed_day_breaks_the_run() -> None:
    tasks = [make_task(TODAY - timedelta(days=o), done=True) for o in range(4)]
    tasks.append(make_task(TODAY - timedelta(days=2), done=False))
    assert compute_streaks(tasks, TODAY).current == 2


def test_max_never_drops_below_previous() -> None:
    summary = compute_streaks([make_task(TODAY, done=True)], TODAY, previous_max=9)
    assert (summary.current, summary.maximum) == (1, 9)


def test_refresh_writes_back_and_is_idempotent(store: EntityStore, add_user) -> None:
    uid = add_user()
    for o in range(4):
        store.add_task(make_task(TODAY - timedelta(days=o), done=True), uid)

    engine = StreakEngine(store)
    first = engine.refresh(uid, today=TODAY)
    second = engine.refresh(uid, today=TODAY)

    assert (first.current_streak, first.max_streak) == (4, 4)
    assert (second.current_streak, second.max_streak) == (4, 4)
    user = store.get_user(uid)
    assert (user.current_streak, user.max_streak) == (4, 4)


def test_broken_streak_keeps_max(store: EntityStore, add_user) -> None:
    uid = add_user()
    for o in range(3):
        store.add_task(make_task(TODAY - timedelta(days=o), done=True), uid)
    engine = StreakEngine(store)
    engine.refresh(uid, today=TODAY)

    later = engine.refresh(uid, today=TODAY + timedelta(days=5))
    assert (later.current_streak, later.max_streak) == (0, 3)


def test_weekly_award_granted_once(store: EntityStore, add_user) -> None:
    uid = add_user()
    for o in range(7):
        store.add_task(make_task(TODAY - timedelta(days=o), done=True), uid)

    engine = StreakEngine(store, policy=AwardPolicy.EXACT)
    first = engine.refresh(uid, today=TODAY)
    second = engine.refresh(uid, today=TODAY)

    assert [a.name for a in first.new_awards] == ["Weekly Streak"]
    assert second.new_awards == ()
    assert [a.name for a in store.get_user(uid).awards_earned] == ["Weekly Streak"]


def test_exact_policy_skips_overshoot_threshold_does_not(store: EntityStore, add_user) -> None:
    uid = add_user()
    for o in range(8):
        store.add_task(make_task(TODAY - timedelta(days=o), done=True), uid)

    exact = StreakEngine(store, policy=AwardPolicy.EXACT).refresh(uid, today=TODAY)
    assert exact.current_streak == 8
    assert exact.new_awards == ()

    threshold = StreakEngine(store, policy=AwardPolicy.THRESHOLD).refresh(uid, today=TODAY)
    assert [a.name for a in threshold.new_awards] == ["Weekly Streak"]


def test_refresh_unknown_user(store: EntityStore) -> None:
    with pytest.raises(NotFoundError):
        StreakEngine(store).refresh("nobody", today=TODAY)


def test_refresh_all_covers_every_user(store: EntityStore, add_user) -> None:
    ann = add_user()
    bob = add_user()
    store.add_task(make_task(TODAY, done=True), ann)

    results = {r.user_id: r.current_streak for r in StreakEngine(store).refresh_all(today=TODAY)}
    assert results == {ann: 1, bob: 0}


def test_complete_task_refreshes_streak(state, add_user) -> None:
    uid = add_user()
    for o in range(1, 7):
        state.store.add_task(make_task(TODAY - timedelta(days=o), done=True), uid)
    tid = state.store.add_task(make_task(TODAY), uid)

    result = complete_task(state, tid, uid, today=TODAY)

    assert result.current_streak == 7
    assert [a.name for a in result.new_awards] == ["Weekly Streak"]
    assert state.store.get_task(tid).is_completed


def test_complete_task_checks_ownership(state, add_user) -> None:
    ann = add_user()
    bob = add_user()
    tid = state.store.add_task(make_task(TODAY), ann)

    with pytest.raises(InvalidStateError):
        complete_task(state, tid, bob, today=TODAY)
    with pytest.raises(NotFoundError):
        complete_task(state, tid, "nobody", today=TODAY)
    assert not state.store.get_task(tid).is_completed
