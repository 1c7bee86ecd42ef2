# src/synker/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from datetime import date
from typing import cast

from ..core.errors import InvalidStateError, NotFoundError, StoreError
from ..core.state import AppState
from ..store.categories import display_name_for
from ..store.models import CapsuleFilter, Task, days_until_deadline
from ..streaks.awards import locked_awards
from ..streaks.streak_api import complete_task, refresh_on_load

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except StoreError as e:
            logger.info("/%s rejected: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()

_NO_USER = "No active user. Use /use <email> first."


def _parse_day(raw: str) -> date | None:
    if raw.lower() == "today":
        return date.today()
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def _format_task(task: Task) -> str:
    mark = "x" if task.is_completed else " "
    return (
        f"[{mark}] {task.id[:8]} {task.date.isoformat()} "
        f"{task.start_time.strftime('%H:%M')}-{task.end_time.strftime('%H:%M')} "
        f"{task.name} ({display_name_for(task)}, {task.priority.value})"
    )


def _resolve_task_id(state: AppState, user_id: str, prefix: str) -> str:
    """Full id of the user's task whose id starts with `prefix`."""
    matches = [t.id for t in state.store.get_all_tasks(user_id) if t.id.startswith(prefix)]
    if not matches:
        raise NotFoundError("task", prefix)
    if len(matches) > 1:
        raise InvalidStateError(f"ambiguous task id '{prefix}' ({len(matches)} matches)")
    return matches[0]


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    stats = state.store.stats()
    policy = state.streaks.policy.value
    user = state.store.get_user(state.active_user_id) if state.active_user_id else None
    who = f"{user.name} <{user.email}>" if user else "none"
    return (
        "Status:\n"
        f"  Active user: {who}\n"
        f"  Award policy: {policy}\n"
        f"  Store: {stats['users']} users, {stats['tasks']} tasks, "
        f"{stats['time_capsules']} capsules, {stats['subtasks']} subtasks"
    )


def cmd_use(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /use <email>"
    user = state.store.find_user_by_email(args[0])
    if user is None:
        return f"No user with email {args[0]}."
    state.active_user_id = user.id
    result = refresh_on_load(state, user.id)
    return f"Now acting as {user.name}. Current streak: {result.current_streak} days."


def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks              -> today's tasks
    /tasks all          -> every task
    /tasks YYYY-MM-DD   -> tasks on that day
    """
    if not state.active_user_id:
        return _NO_USER
    uid = state.active_user_id

    if args and args[0].lower() == "all":
        tasks = state.store.get_all_tasks(uid)
        title = "All tasks"
    else:
        day = _parse_day(args[0]) if args else date.today()
        if day is None:
            return "Usage: /tasks [today|all|YYYY-MM-DD]"
        tasks = state.store.get_tasks_by_date(uid, day)
        title = f"Tasks on {day.isoformat()}"

    if not tasks:
        return f"{title}: none."
    tasks.sort(key=lambda t: (t.date, t.start_time, -t.priority.sort_order))
    return "\n".join([f"{title}:"] + [f"  {_format_task(t)}" for t in tasks])


def cmd_overdue(state: AppState, args: list[str]) -> str:
    if not state.active_user_id:
        return _NO_USER
    tasks = state.store.get_overdue_tasks(state.active_user_id)
    if not tasks:
        return "No overdue tasks."
    tasks.sort(key=lambda t: (t.date, t.start_time))
    return "\n".join(["Overdue tasks:"] + [f"  {_format_task(t)}" for t in tasks])


def cmd_done(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not state.active_user_id:
        return _NO_USER
    if not args:
        return "Usage: /done <task-id>"
    task_id = _resolve_task_id(state, state.active_user_id, args[0])

    result = complete_task(state, task_id, state.active_user_id)
    if emit:
        for award in result.new_awards:
            emit(f"Award earned: {award.name}! {award.description}")
    return f"Task completed. Current streak: {result.current_streak} days (max {result.max_streak})."


def cmd_reschedule(state: AppState, args: list[str]) -> str:
    """/reschedule <task-id> [YYYY-MM-DD] -> move a task (default: to today)."""
    if not state.active_user_id:
        return _NO_USER
    if not args:
        return "Usage: /reschedule <task-id> [YYYY-MM-DD]"
    task_id = _resolve_task_id(state, state.active_user_id, args[0])
    day = _parse_day(args[1]) if len(args) > 1 else date.today()
    if day is None:
        return "Usage: /reschedule <task-id> [YYYY-MM-DD]"
    state.store.reschedule_task(task_id, day)
    return f"Task moved to {day.isoformat()}."


def cmd_streak(state: AppState, args: list[str]) -> str:
    if not state.active_user_id:
        return _NO_USER
    result = state.streaks.refresh(state.active_user_id)
    return f"Current streak: {result.current_streak} days\nMax streak: {result.max_streak} days"


def cmd_awards(state: AppState, args: list[str]) -> str:
    if not state.active_user_id:
        return _NO_USER
    user = state.store.get_user(state.active_user_id)
    if user is None:
        return _NO_USER

    lines = ["Earned awards:"]
    if user.awards_earned:
        for a in user.awards_earned:
            lines.append(f"  {a.name} - {a.description} ({a.date_earned.date().isoformat()})")
    else:
        lines.append("  none yet")
    lines.append("Locked awards:")
    for award in locked_awards(user):
        lines.append(f"  {award.name} - {award.description}")
    return "\n".join(lines)


def cmd_capsules(state: AppState, args: list[str]) -> str:
    """
    /capsules            -> all capsules
    /capsules active     -> started but not finished
    /capsules completed  -> 100% done
    """
    if not state.active_user_id:
        return _NO_USER
    try:
        capsule_filter = CapsuleFilter(args[0].lower()) if args else CapsuleFilter.ALL
    except ValueError:
        return "Usage: /capsules [all|active|completed]"

    capsules = state.store.get_all_time_capsules(state.active_user_id, capsule_filter)
    if not capsules:
        return "No time capsules."
    today = date.today()
    lines = ["Time capsules:"]
    for c in capsules:
        lines.append(
            f"  {c.id[:8]} {c.name} {c.completion_percentage:.0f}% "
            f"(due in {days_until_deadline(c, today)} days, {c.priority.value})"
        )
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show active user, award policy and store totals.")
registry.register("use", cmd_use, help_text="Act as the user with this email: /use <email>.")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks [today|all|YYYY-MM-DD].")
registry.register("overdue", cmd_overdue, help_text="List past tasks that are not completed.")
registry.register("done", cmd_done, help_text="Complete a task and refresh streaks: /done <task-id>.")
registry.register(
    "reschedule", cmd_reschedule, help_text="Move a task: /reschedule <task-id> [YYYY-MM-DD]."
)
registry.register("streak", cmd_streak, help_text="Recompute and show current/max streak.")
registry.register("awards", cmd_awards, help_text="Show earned and locked awards.")
registry.register(
    "capsules", cmd_capsules, help_text="List time capsules: /capsules [all|active|completed]."
)
