"""Deferred callbacks used by ``setReminder``.

Schedulers only know ``(task, payload)`` pairs; the hosting layer supplies a
dispatch callback that routes a fired task back to its session.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

Dispatch = Callable[[str, dict[str, Any]], None]


class Scheduler(Protocol):
    def schedule(self, delay_seconds: float, task: str, payload: dict[str, Any]) -> None:
        ...


class TimerScheduler:
    def __init__(self, dispatch: Dispatch) -> None:
        self._dispatch = dispatch
        self._timers: list[threading.Timer] = []
        self._lock = threading.Lock()

    def schedule(self, delay_seconds: float, task: str, payload: dict[str, Any]) -> None:
        delay = max(0.0, float(delay_seconds))
        timer = threading.Timer(delay, self._fire, args=(task, dict(payload)))
        timer.daemon = True
        with self._lock:
            self._timers = [item for item in self._timers if item.is_alive()]
            self._timers.append(timer)
        timer.start()
        logger.info("scheduled %s in %.1fs", task, delay)

    def _fire(self, task: str, payload: dict[str, Any]) -> None:
        try:
            self._dispatch(task, payload)
        except Exception:  # noqa: BLE001
            logger.exception("scheduled task %s failed", task)

    def cancel_all(self) -> None:
        with self._lock:
            timers, self._timers = self._timers, []
        for timer in timers:
            timer.cancel()


@dataclass(slots=True)
class ScheduledTask:
    due: float
    task: str
    payload: dict[str, Any]


@dataclass(slots=True)
class ManualScheduler:
    """Deterministic scheduler: tasks fire only when :meth:`advance` passes their due time."""

    dispatch: Dispatch | None = None
    now: float = 0.0
    pending: list[ScheduledTask] = field(default_factory=list)

    def schedule(self, delay_seconds: float, task: str, payload: dict[str, Any]) -> None:
        due = self.now + max(0.0, float(delay_seconds))
        self.pending.append(ScheduledTask(due=due, task=task, payload=dict(payload)))

    def advance(self, seconds: float) -> int:
        self.now += seconds
        due = sorted(
            (item for item in self.pending if item.due <= self.now), key=lambda item: item.due
        )
        self.pending = [item for item in self.pending if item.due > self.now]
        for item in due:
            if self.dispatch is not None:
                self.dispatch(item.task, item.payload)
        return len(due)
