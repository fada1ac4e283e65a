from __future__ import annotations

import logging
import threading
from typing import Any

from sage.runtime.scheduler import ManualScheduler, TimerScheduler


def test_manual_scheduler_fires_only_due_tasks_in_order() -> None:
    fired: list[tuple[str, dict[str, Any]]] = []
    scheduler = ManualScheduler(dispatch=lambda task, payload: fired.append((task, payload)))
    scheduler.schedule(30, "on_task", {"message": "late"})
    scheduler.schedule(10, "on_task", {"message": "early"})
    scheduler.schedule(90, "on_task", {"message": "later"})

    assert scheduler.advance(5) == 0
    assert scheduler.advance(25) == 2
    assert [payload["message"] for _task, payload in fired] == ["early", "late"]
    assert len(scheduler.pending) == 1

    assert scheduler.advance(60) == 1
    assert fired[-1] == ("on_task", {"message": "later"})
    assert scheduler.pending == []


def test_manual_scheduler_clamps_negative_delays() -> None:
    scheduler = ManualScheduler(now=100.0)
    scheduler.schedule(-5, "on_task", {})

    assert scheduler.pending[0].due == 100.0


def test_manual_scheduler_copies_payload() -> None:
    scheduler = ManualScheduler()
    payload = {"message": "a"}
    scheduler.schedule(1, "on_task", payload)
    payload["message"] = "b"

    assert scheduler.pending[0].payload == {"message": "a"}


def test_timer_scheduler_dispatches_on_background_thread() -> None:
    done = threading.Event()
    fired: list[tuple[str, dict[str, Any]]] = []

    def dispatch(task: str, payload: dict[str, Any]) -> None:
        fired.append((task, payload))
        done.set()

    scheduler = TimerScheduler(dispatch)
    scheduler.schedule(0, "on_task", {"session_id": "s-1", "message": "now"})

    assert done.wait(timeout=5)
    assert fired == [("on_task", {"session_id": "s-1", "message": "now"})]


def test_timer_scheduler_logs_dispatch_failures(caplog) -> None:
    def dispatch(task: str, payload: dict[str, Any]) -> None:
        raise RuntimeError("boom")

    scheduler = TimerScheduler(dispatch)
    with caplog.at_level(logging.ERROR, logger="sage.runtime.scheduler"):
        scheduler._fire("on_task", {})

    assert any("scheduled task on_task failed" in record.message for record in caplog.records)


def test_timer_scheduler_cancel_all() -> None:
    fired: list[str] = []
    scheduler = TimerScheduler(lambda task, payload: fired.append(task))
    scheduler.schedule(60, "on_task", {})

    scheduler.cancel_all()

    assert fired == []
