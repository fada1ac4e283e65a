from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Iterator

import pytest

from sage.backends.fake import FakeBackend, tool_call
from sage.config import Settings
from sage.core.events import TextDelta, ToolInputAvailable, ToolOutputAvailable
from sage.core.messages import ConversationMessage, TextPart, ToolPart
from sage.core.types import ModelReply
from sage.runtime import checkpoints
from sage.runtime.scheduler import ManualScheduler
from sage.runtime.session import RATE_LIMIT_MESSAGE
from sage.runtime.sessions import SessionManager
from sage.runtime.stream import iter_sse


def _clock(*values: float):
    ticks: Iterator[float] = iter(values)
    return lambda: next(ticks)


def _manager(tmp_path: Path, backend: FakeBackend, *clock_values: float) -> SessionManager:
    return SessionManager(
        backend,
        Settings(data_root=tmp_path),
        scheduler_factory=lambda dispatch: ManualScheduler(dispatch=dispatch),
        clock=_clock(*clock_values),
        today=lambda: date(2026, 10, 19),
    )


def _user(text: str, message_id: str = "u1") -> ConversationMessage:
    return ConversationMessage(role="user", parts=(TextPart(text=text),), id=message_id)


def _text(events) -> str:
    return "".join(event.delta for event in events if isinstance(event, TextDelta))


def test_turn_persists_history_and_assistant_reply(tmp_path: Path) -> None:
    backend = FakeBackend()
    backend.extend_replies([ModelReply(response="Hello!")])
    manager = _manager(tmp_path, backend, 100.0)

    events = list(manager.submit_turn("s-1", [_user("hi")]))

    assert _text(events) == "Hello!"
    stored = manager.messages("s-1")
    assert stored[0] == _user("hi")
    assert stored[1].role == "assistant"
    assert stored[1].parts == (TextPart(text="Hello!"),)
    assert (tmp_path / "checkpoints" / "s-1.json").exists()


def test_tool_activity_is_persisted_on_the_assistant_message(tmp_path: Path) -> None:
    backend = FakeBackend()
    backend.extend_replies(
        [
            ModelReply(
                tool_calls=[tool_call("setReminder", {"message": "stretch", "delaySeconds": 5}, "c1")]
            ),
            ModelReply(response="Set."),
        ]
    )
    manager = _manager(tmp_path, backend, 100.0)

    list(manager.submit_turn("s-1", [_user("remind me to stretch")]))

    assistant = manager.messages("s-1")[-1]
    assert assistant.parts[0] == ToolPart(
        tool_call_id="c1",
        tool_name="setReminder",
        state="output-available",
        input={"message": "stretch", "delaySeconds": 5},
        output={"scheduled": True, "message": "stretch", "inSeconds": 5},
    )
    assert assistant.parts[1] == TextPart(text="Set.")


def test_rate_limited_turn_adds_no_assistant_message(tmp_path: Path) -> None:
    backend = FakeBackend()
    backend.extend_replies([ModelReply(response="first")])
    manager = _manager(tmp_path, backend, 100.0, 100.5)
    list(manager.submit_turn("s-1", [_user("one")]))

    history = manager.messages("s-1") + [_user("two", "u2")]
    events = list(manager.submit_turn("s-1", history))

    assert _text(events) == RATE_LIMIT_MESSAGE
    assert manager.messages("s-1") == history


def test_busy_session_rejects_overlapping_turn(tmp_path: Path) -> None:
    backend = FakeBackend()
    backend.extend_replies(
        [
            ModelReply(tool_calls=[tool_call("setReminder", {"message": "a", "delaySeconds": 1}, "c1")]),
            ModelReply(response="done"),
        ]
    )
    manager = _manager(tmp_path, backend, 100.0, 500.0)

    first = manager.submit_turn("s-1", [_user("remind me")])
    assert isinstance(next(first), ToolInputAvailable)
    overlapping = list(manager.submit_turn("s-1", [_user("hello?")]))
    remaining = list(first)

    assert _text(overlapping) == RATE_LIMIT_MESSAGE
    assert _text(remaining) == "done"
    assert len(backend.calls) == 2


def test_abandoned_stream_releases_the_session(tmp_path: Path) -> None:
    backend = FakeBackend()
    backend.extend_replies(
        [
            ModelReply(tool_calls=[tool_call("setReminder", {"message": "a", "delaySeconds": 1}, "c1")]),
            ModelReply(response="back again"),
        ]
    )
    manager = _manager(tmp_path, backend, 100.0, 500.0)

    stream = iter_sse(manager.submit_turn("s-1", [_user("remind me")]))
    assert next(stream).startswith('data: {"type": "tool-input-available"')
    stream.close()

    assert manager.get("s-1").is_generating is False
    events = list(manager.submit_turn("s-1", [_user("hello?")]))
    assert _text(events) == "back again"


def test_unsafe_session_id_writes_nothing(tmp_path: Path) -> None:
    manager = _manager(tmp_path / "data", FakeBackend(), 100.0)

    with pytest.raises(ValueError, match="invalid session id"):
        list(manager.submit_turn("../../escaped", [_user("hi")]))
    assert list(tmp_path.rglob("*.json")) == []


def test_sessions_are_isolated(tmp_path: Path) -> None:
    backend = FakeBackend()
    backend.extend_replies([ModelReply(response="a"), ModelReply(response="b")])
    manager = _manager(tmp_path, backend, 100.0, 100.1)

    first = list(manager.submit_turn("s-1", [_user("hi")]))
    second = list(manager.submit_turn("s-2", [_user("hi")]))

    assert _text(first) == "a"
    assert _text(second) == "b"


def test_reminder_round_trip(tmp_path: Path) -> None:
    backend = FakeBackend()
    backend.extend_replies(
        [
            ModelReply(
                tool_calls=[
                    tool_call("setReminder", {"message": "drink water", "delaySeconds": 60}, "c1")
                ]
            ),
            ModelReply(response="I'll remind you."),
            ModelReply(response="Time to drink water!"),
        ]
    )
    manager = _manager(tmp_path, backend, 100.0, 200.0)

    events = list(manager.submit_turn("s-1", [_user("remind me to drink water in 60 seconds")]))
    outputs = [event for event in events if isinstance(event, ToolOutputAvailable)]
    assert outputs[0].output == {"scheduled": True, "message": "drink water", "inSeconds": 60}

    assert manager.scheduler.advance(59) == 0
    assert manager.scheduler.advance(1) == 1
    session = manager.get("s-1")
    assert len(session.reminders) == 1
    assert session.reminders[0].startswith("⏰ Reminder: drink water (triggered at ")
    saved = checkpoints.load_latest("s-1", base_dir=manager.checkpoint_dir)
    assert saved is not None
    assert saved.reminders == session.reminders

    reminder = session.reminders[0]
    history = manager.messages("s-1") + [_user("hi", "u2")]
    list(manager.submit_turn("s-1", history))

    system = backend.calls[-1]["messages"][0]["content"]
    assert system.count(reminder) == 1
    assert manager.get("s-1").reminders == []
    saved = checkpoints.load_latest("s-1", base_dir=manager.checkpoint_dir)
    assert saved.reminders == []


def test_reminders_survive_restart(tmp_path: Path) -> None:
    manager = _manager(tmp_path, FakeBackend())
    manager.dispatch("on_task", {"session_id": "s-1", "message": "stretch"})

    restarted = _manager(tmp_path, FakeBackend())

    assert len(restarted.get("s-1").reminders) == 1


def test_dispatch_ignores_unknown_tasks(tmp_path: Path, caplog) -> None:
    manager = _manager(tmp_path, FakeBackend())

    manager.dispatch("cleanup", {"session_id": "s-1"})

    assert manager.get("s-1").reminders == []
    assert any("unknown scheduled task" in record.message for record in caplog.records)


def test_dispatch_requires_session_id(tmp_path: Path) -> None:
    manager = _manager(tmp_path, FakeBackend())

    with pytest.raises(ValueError, match="session_id"):
        manager.dispatch("on_task", {"message": "stretch"})


def test_suspended_call_then_client_fulfilment(tmp_path: Path) -> None:
    backend = FakeBackend()
    backend.extend_replies(
        [
            ModelReply(tool_calls=[tool_call("getUserInfo", {}, "c1")]),
            ModelReply(response="You are on Paris time."),
        ]
    )
    manager = _manager(tmp_path, backend, 100.0, 110.0)

    events = list(manager.submit_turn("s-1", [_user("what timezone am I in?")]))
    assert events[-1].output["pending"] is True

    assistant = manager.messages("s-1")[-1]
    assert assistant.parts == (
        ToolPart(tool_call_id="c1", tool_name="getUserInfo", state="pending", input={}),
    )

    answered = ToolPart(
        tool_call_id="c1",
        tool_name="getUserInfo",
        state="output-available",
        input={},
        output={"timezone": "Europe/Paris", "locale": "fr-FR", "localTime": "9:00:00 AM"},
    )
    history = [
        _user("what timezone am I in?"),
        ConversationMessage(role="assistant", parts=(answered,), id="a1"),
        ConversationMessage(role="user", parts=(answered,), id="u2"),
    ]
    followup = list(manager.submit_turn("s-1", history))

    assert _text(followup) == "You are on Paris time."
    roles = [message["role"] for message in backend.calls[-1]["messages"]]
    assert roles == ["system", "user", "assistant", "assistant", "tool"]
    assert backend.calls[-1]["messages"][-1]["tool_call_id"] == "c1"


def test_clear_messages_keeps_reminders(tmp_path: Path) -> None:
    backend = FakeBackend()
    backend.extend_replies([ModelReply(response="Hello!")])
    manager = _manager(tmp_path, backend, 100.0)
    list(manager.submit_turn("s-1", [_user("hi")]))
    manager.dispatch("on_task", {"session_id": "s-1", "message": "stretch"})

    manager.clear_messages("s-1")

    assert manager.messages("s-1") == []
    saved = checkpoints.load_latest("s-1", base_dir=manager.checkpoint_dir)
    assert len(saved.reminders) == 1


def test_messages_for_unknown_session_is_empty(tmp_path: Path) -> None:
    manager = _manager(tmp_path, FakeBackend())

    assert manager.messages("nobody") == []
