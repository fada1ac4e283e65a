"""Per-session actor: rate limiting, reminder queue and turn execution.

A :class:`ChatSession` owns its :class:`SessionState` and is only touched
through :meth:`ChatSession.submit_turn` and :meth:`ChatSession.fire_reminder`.
It does no locking of its own; the hosting layer must not run two entry
points against the same session at once.
"""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Any, Callable, Iterator

from sage.backends.registry import Backend
from sage.config import Settings
from sage.core.events import ErrorEvent, StreamEvent, text_events
from sage.core.messages import ConversationMessage
from sage.core.tracing import TraceWriter, emit_trace
from sage.core.types import SessionState
from sage.runtime.guards import GuardPolicy
from sage.runtime.loop import LoopReport, StepLoop
from sage.runtime.normalizer import build_system_prompt, to_model_turns
from sage.runtime.scheduler import Scheduler
from sage.tools.context import ToolContext
from sage.tools.executor import ToolExecutor
from sage.tools.reminder_tool import format_reminder

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Rate limit: Please wait a few seconds before sending another message."
GENERIC_ERROR_MESSAGE = "An error occurred during AI generation."


def rate_limited_events() -> list[StreamEvent]:
    return text_events(RATE_LIMIT_MESSAGE)


class ChatSession:
    def __init__(
        self,
        session_id: str,
        *,
        backend: Backend,
        executor: ToolExecutor,
        scheduler: Scheduler,
        settings: Settings | None = None,
        state: SessionState | None = None,
        policy: GuardPolicy | None = None,
        clock: Callable[[], float] = time.time,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.session_id = session_id
        self._backend = backend
        self._executor = executor
        self._scheduler = scheduler
        self._settings = settings or Settings()
        self._state = state or SessionState()
        self._policy = policy
        self._clock = clock
        self._today = today
        self.turns_admitted = 0
        self.last_report: LoopReport | None = None

    @property
    def is_generating(self) -> bool:
        return self._state.is_generating

    @property
    def reminders(self) -> list[str]:
        return list(self._state.reminders)

    def _admit(self, now: float) -> bool:
        state = self._state
        if state.is_generating:
            return False
        if state.last_request_time is not None:
            if now - state.last_request_time < self._settings.min_request_interval_s:
                return False
        state.is_generating = True
        state.last_request_time = now
        self.turns_admitted += 1
        return True

    def _drain_reminders(self) -> list[str]:
        pending, self._state.reminders = self._state.reminders, []
        return pending

    def _tracer(self) -> TraceWriter | None:
        if not self._settings.trace:
            return None
        return TraceWriter(
            self.session_id,
            base_dir=self._settings.data_root / "traces",
            run_id=f"turn-{self.turns_admitted}",
        )

    def submit_turn(self, messages: list[ConversationMessage]) -> Iterator[StreamEvent]:
        if not self._admit(self._clock()):
            logger.warning(
                "blocked concurrent or rapid request for session %s", self.session_id
            )
            yield from rate_limited_events()
            return

        tracer = self._tracer()
        try:
            reminders = self._drain_reminders()
            system_prompt = build_system_prompt(reminders, self._today())
            history = to_model_turns(messages)
            context = ToolContext(
                session_id=self.session_id,
                scheduler=self._scheduler,
                settings=self._settings,
            )
            loop = StepLoop(
                self._backend,
                self._executor,
                context,
                policy=self._policy,
                max_passes=self._settings.max_passes,
                max_tokens=self._settings.max_tokens,
                tracer=tracer,
            )
            self.last_report = loop.report
            yield from loop.run(system_prompt, history)
            self.last_report = loop.report
            emit_trace(
                tracer,
                "turn_end",
                {
                    "state": loop.report.state.value,
                    "model_calls": loop.report.model_calls,
                    "reminders": len(reminders),
                },
            )
        except Exception:  # noqa: BLE001
            logger.exception("stream error in session %s", self.session_id)
            yield ErrorEvent(error_text=GENERIC_ERROR_MESSAGE)
        finally:
            self._state.is_generating = False

    def fire_reminder(self, payload: dict[str, Any]) -> str:
        message = payload.get("message")
        if not isinstance(message, str):
            raise ValueError("reminder payload must include a message string")
        record = format_reminder(message)
        self._state.reminders.append(record)
        logger.info("reminder queued for session %s", self.session_id)
        return record
