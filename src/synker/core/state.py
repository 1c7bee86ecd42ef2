# src/synker/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..store.entity_store import EntityStore
    from ..store.json_mirror import JsonFileMirror
    from ..streaks.streak_engine import StreakEngine


@dataclass
class AppState:
    """
    Process-wide wiring built once by the composition root (cli/bootstrap.py)
    and passed explicitly to every consumer.
    """

    # Settings object (config.Settings in the app, SimpleNamespace in tests).
    settings: object

    store: EntityStore
    streaks: StreakEngine
    mirror: JsonFileMirror | None = None

    # User the console acts on; None until one is selected.
    active_user_id: str | None = None
