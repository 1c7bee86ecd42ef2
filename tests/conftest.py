# tests/conftest.py

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace

import pytest

from synker.core.state import AppState
from synker.store.entity_store import EntityStore
from synker.store.models import User
from synker.streaks.awards import AwardPolicy
from synker.streaks.streak_engine import StreakEngine

from .fakes import RecordingMirror


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the developer's .env.
    """
    return SimpleNamespace(
        app_name="synker-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        snapshot_path=tmp_path / "data" / "store.json",
        award_policy="exact",
        seed_sample_data=False,
        reminders_enabled=False,
        reminder_interval_seconds=0.5,
    )


@pytest.fixture()
def mirror() -> RecordingMirror:
    return RecordingMirror()


@pytest.fixture()
def store(mirror: RecordingMirror) -> EntityStore:
    return EntityStore(mirror=mirror)


@pytest.fixture()
def state(settings: SimpleNamespace, store: EntityStore) -> AppState:
    """AppState over an in-memory store; no JSON file involved."""
    return AppState(
        settings=settings,
        store=store,
        streaks=StreakEngine(store, policy=AwardPolicy.EXACT),
    )


@pytest.fixture()
def add_user(store: EntityStore) -> Callable[..., str]:
    counter = {"n": 0}

    def _add(name: str = "Ann", email: str | None = None) -> str:
        counter["n"] += 1
        email = email or f"user{counter['n']}@mail.com"
        return store.add_user(User(name=name, email=email, password_hash="x"))

    return _add

