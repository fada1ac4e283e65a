"""Hosting layer: owns sessions, serializes access to them, and persists them."""

from __future__ import annotations

import logging
import threading
import time
from collections import defaultdict
from datetime import date
from pathlib import Path
from typing import Any, Callable, Iterator

from sage.backends.registry import Backend
from sage.config import Settings
from sage.core.events import StreamEvent
from sage.core.messages import ConversationMessage
from sage.core.types import SessionState
from sage.runtime import checkpoints
from sage.runtime.scheduler import Dispatch, Scheduler, TimerScheduler
from sage.runtime.session import ChatSession, rate_limited_events
from sage.runtime.stream import assistant_message_from_events
from sage.tools import build_default_registry
from sage.tools.executor import ToolExecutor
from sage.tools.reminder_tool import REMINDER_TASK

logger = logging.getLogger(__name__)


class SessionManager:
    def __init__(
        self,
        backend: Backend,
        settings: Settings | None = None,
        *,
        executor: ToolExecutor | None = None,
        scheduler_factory: Callable[[Dispatch], Scheduler] = TimerScheduler,
        clock: Callable[[], float] = time.time,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.settings = settings or Settings()
        self.backend = backend
        if executor is None:
            _registry, executor = build_default_registry()
        self.executor = executor
        self.scheduler = scheduler_factory(self.dispatch)
        self._clock = clock
        self._today = today
        self._sessions: dict[str, ChatSession] = {}
        self._locks: defaultdict[str, threading.Lock] = defaultdict(threading.Lock)
        self._registry_lock = threading.Lock()

    @property
    def checkpoint_dir(self) -> Path:
        return self.settings.data_root / "checkpoints"

    def get(self, session_id: str) -> ChatSession:
        with self._registry_lock:
            session = self._sessions.get(session_id)
            if session is None:
                checkpoint = checkpoints.load_or_create(session_id, base_dir=self.checkpoint_dir)
                session = ChatSession(
                    session_id,
                    backend=self.backend,
                    executor=self.executor,
                    scheduler=self.scheduler,
                    settings=self.settings,
                    state=SessionState(reminders=list(checkpoint.reminders)),
                    clock=self._clock,
                    today=self._today,
                )
                self._sessions[session_id] = session
        return session

    def _lock_for(self, session_id: str) -> threading.Lock:
        with self._registry_lock:
            return self._locks[session_id]

    def submit_turn(
        self, session_id: str, messages: list[ConversationMessage]
    ) -> Iterator[StreamEvent]:
        session = self.get(session_id)
        lock = self._lock_for(session_id)
        if not lock.acquire(blocking=False):
            logger.warning("session %s is busy; rejecting request", session_id)
            yield from rate_limited_events()
            return
        emitted: list[StreamEvent] = []
        turn = session.submit_turn(messages)
        try:
            admitted_before = session.turns_admitted
            for event in turn:
                emitted.append(event)
                yield event
            admitted = session.turns_admitted > admitted_before
            self._persist(session, messages, emitted if admitted else [])
        finally:
            # Closing early (client gone) must still clear the busy flag.
            turn.close()
            lock.release()

    def dispatch(self, task: str, payload: dict[str, Any]) -> None:
        if task != REMINDER_TASK:
            logger.warning("ignoring unknown scheduled task %r", task)
            return
        session_id = payload.get("session_id")
        if not isinstance(session_id, str):
            raise ValueError("scheduled reminder is missing its session_id")
        session = self.get(session_id)
        with self._lock_for(session_id):
            session.fire_reminder(payload)
            checkpoint = checkpoints.load_or_create(session_id, base_dir=self.checkpoint_dir)
            checkpoint.reminders = session.reminders
            checkpoints.save_checkpoint(checkpoint, base_dir=self.checkpoint_dir)

    def _persist(
        self,
        session: ChatSession,
        messages: list[ConversationMessage],
        emitted: list[StreamEvent],
    ) -> None:
        checkpoint = checkpoints.load_or_create(session.session_id, base_dir=self.checkpoint_dir)
        history = list(messages)
        produced = assistant_message_from_events(emitted)
        if produced is not None:
            history.append(produced)
        checkpoint.messages = history
        checkpoint.reminders = session.reminders
        checkpoints.save_checkpoint(checkpoint, base_dir=self.checkpoint_dir)

    def messages(self, session_id: str) -> list[ConversationMessage]:
        checkpoint = checkpoints.load_latest(session_id, base_dir=self.checkpoint_dir)
        return list(checkpoint.messages) if checkpoint is not None else []

    def clear_messages(self, session_id: str) -> None:
        with self._lock_for(session_id):
            checkpoint = checkpoints.load_or_create(session_id, base_dir=self.checkpoint_dir)
            checkpoint.messages = []
            checkpoints.save_checkpoint(checkpoint, base_dir=self.checkpoint_dir)
