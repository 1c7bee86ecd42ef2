# src/synker/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, refreshes streaks, then starts:
- the reminder scheduler in a background thread (optional),
- the console REPL in the main thread.
"""

from __future__ import annotations

import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import ConsoleNotifier, run_console_loop
from ..logging_setup import setup_logging
from ..reminders.background import ReminderBackgroundRunner, start_reminders_in_background

logger = logging.getLogger(__name__)


def _shutdown(state, runner: ReminderBackgroundRunner | None) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    if runner is not None:
        runner.stop()
        runner.join(timeout=5.0)

    try:
        logger.info("Final store stats=%s", state.store.stats())
    except Exception:
        logger.debug("Stats on shutdown failed.", exc_info=True)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    log_file = setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s (log file %s)...", settings.app_name, log_file)

    state = create_initial_state(settings=settings)

    # Streaks can go stale overnight; recompute before the first command.
    for result in state.streaks.refresh_all():
        if result.new_awards:
            logger.info(
                "Awards on load user=%s awards=%s",
                result.user_id,
                [a.name for a in result.new_awards],
            )

    runner: ReminderBackgroundRunner | None = None
    if settings.reminders_enabled:
        runner = start_reminders_in_background(
            state.store,
            ConsoleNotifier(),
            interval_seconds=settings.reminder_interval_seconds,
        )

    try:
        run_console_loop(state)
    finally:
        _shutdown(state, runner)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
