# tests/test_commands.py

from __future__ import annotations

from datetime import date, timedelta

from synker.cli.commands import CommandRegistry, registry

from .fakes import make_task


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}

    def h2(state, args):
        called["h2"] += 1
        return "h2"

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b")

    assert reg.handle(state, "/a x") == "h2"
    assert reg.handle(state, "/b y", emit=lambda _: None) == "h3"
    assert called["h2"] == 1
    assert called["h3"] == 1


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_help_lists_commands(state) -> None:
    out = registry.handle(state, "/help") or ""
    for name in ("/tasks", "/done", "/streak", "/awards", "/capsules"):
        assert name in out
    assert registry.handle(state, "/?") == out


def test_commands_need_active_user(state) -> None:
    assert "No active user" in (registry.handle(state, "/tasks") or "")


def test_use_and_done_flow(state, add_user) -> None:
    uid = add_user(name="Ann", email="ann@mail.com")
    today = date.today()
    for o in range(1, 7):
        state.store.add_task(make_task(today - timedelta(days=o), done=True), uid)
    tid = state.store.add_task(make_task(today, name="Jog"), uid)

    assert registry.handle(state, "/use ann@mail.com") == "Now acting as Ann. Current streak: 6 days."
    assert state.active_user_id == uid
    assert "Jog" in (registry.handle(state, "/tasks") or "")

    emitted: list[str] = []
    reply = registry.handle(state, f"/done {tid[:10]}", emit=emitted.append) or ""
    assert reply.startswith("Task completed. Current streak: 7 days")
    assert emitted and emitted[0].startswith("Award earned: Weekly Streak!")

    awards = registry.handle(state, "/awards") or ""
    assert "Weekly Streak" in awards.split("Locked awards:")[0]

    again = registry.handle(state, f"/done {tid}") or ""
    assert again.startswith("Error:")


def test_done_unknown_task_is_reported(state, add_user) -> None:
    state.active_user_id = add_user()
    assert (registry.handle(state, "/done deadbeef") or "").startswith("Error: task not found")


def test_overdue_and_reschedule(state, add_user) -> None:
    uid = add_user()
    state.active_user_id = uid
    tid = state.store.add_task(make_task(date.today() - timedelta(days=3), name="Late"), uid)

    assert "Late" in (registry.handle(state, "/overdue") or "")
    assert registry.handle(state, f"/reschedule {tid}") == f"Task moved to {date.today().isoformat()}."
    assert registry.handle(state, "/overdue") == "No overdue tasks."


def test_capsules_filter_argument(state, add_user) -> None:
    state.active_user_id = add_user()
    assert registry.handle(state, "/capsules") == "No time capsules."
    assert (registry.handle(state, "/capsules bogus") or "").startswith("Usage:")
