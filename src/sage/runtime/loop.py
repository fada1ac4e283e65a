"""The bounded model/tool step loop driving one chat turn.

Each pass calls the model once. A plain-text reply ends the turn; tool-call
intents are appended as an assistant turn, filtered through the guard
policy, executed, and their results folded back in as tool turns before the
next pass. ``getUserInfo`` suspends the turn instead, since only the client
can answer it.
"""

from __future__ import annotations

import json
import logging
import secrets
import string
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from sage.backends.registry import Backend
from sage.core.events import StreamEvent, ToolInputAvailable, ToolOutputAvailable, text_events
from sage.core.tracing import TraceWriter, emit_trace
from sage.core.types import ModelTurn, ToolCallIntent
from sage.runtime.guards import GuardPolicy, Verdict, default_policy
from sage.tools.context import ToolContext
from sage.tools.executor import ToolExecutor
from sage.tools.results import ToolResult

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


class LoopState(str, Enum):
    MODEL_CALL = "model_call"
    INTERPRET = "interpret"
    EXECUTE = "execute"
    TERMINAL_TEXT = "terminal_text"
    SUSPENDED = "suspended"
    EXHAUSTED = "exhausted"


@dataclass(slots=True)
class LoopReport:
    state: LoopState = LoopState.MODEL_CALL
    model_calls: int = 0
    invoked: list[str] = field(default_factory=list)
    results: list[ToolResult] = field(default_factory=list)
    turns: list[ModelTurn] = field(default_factory=list)
    text: str | None = None


def parse_arguments(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def new_call_id() -> str:
    return "call_" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))


class StepLoop:
    def __init__(
        self,
        backend: Backend,
        executor: ToolExecutor,
        context: ToolContext,
        *,
        policy: GuardPolicy | None = None,
        max_passes: int = 2,
        max_tokens: int = 512,
        tools: list[dict[str, Any]] | None = None,
        tracer: TraceWriter | None = None,
    ) -> None:
        self._backend = backend
        self._executor = executor
        self._context = context
        self._policy = policy or default_policy(context.settings.trigger_words)
        self._max_passes = max_passes
        self._max_tokens = max_tokens
        self._tools = tools if tools is not None else executor.advertised()
        self._tracer = tracer
        self.report = LoopReport()

    def run(self, system_prompt: str, history: list[ModelTurn]) -> Iterator[StreamEvent]:
        report = LoopReport(turns=[ModelTurn(role="system", content=system_prompt), *history])
        self.report = report
        for step in range(self._max_passes):
            report.state = LoopState.MODEL_CALL
            emit_trace(self._tracer, "llm_req", {"step": step, "messages": len(report.turns)})
            reply = self._backend.chat(report.turns, self._tools, self._max_tokens)
            report.model_calls += 1
            emit_trace(
                self._tracer,
                "llm_done",
                {
                    "step": step,
                    "response": reply.response,
                    "tool_calls": [call.function.name for call in reply.tool_calls],
                },
            )

            report.state = LoopState.INTERPRET
            if not reply.tool_calls:
                report.text = reply.response or ""
                report.state = LoopState.TERMINAL_TEXT
                yield from text_events(report.text)
                return

            report.turns.append(
                ModelTurn(role="assistant", content="", tool_calls=list(reply.tool_calls))
            )
            emit_trace(
                self._tracer,
                "tool_plan",
                {"step": step, "calls": [call.function.name for call in reply.tool_calls]},
            )
            for intent in reply.tool_calls:
                decision = self._policy.check(report.invoked, intent, history)
                if decision.verdict is not Verdict.EXECUTE:
                    emit_trace(
                        self._tracer,
                        "guard",
                        {
                            "tool": intent.function.name,
                            "verdict": decision.verdict.value,
                            "reason": decision.reason,
                        },
                    )
                if decision.aborts:
                    if decision.message:
                        report.turns.append(ModelTurn(role="user", content=decision.message))
                    break
                report.invoked.append(intent.function.name)
                if decision.verdict is Verdict.SKIP:
                    logger.warning("blocked %s call: %s", intent.function.name, decision.reason)
                    continue

                report.state = LoopState.EXECUTE
                yield from self._execute(intent)
                if report.state is LoopState.SUSPENDED:
                    return

        report.state = LoopState.EXHAUSTED
        logger.warning(
            "step loop exhausted %d passes without a text reply", self._max_passes
        )
        emit_trace(self._tracer, "loop_exhausted", {"model_calls": report.model_calls})

    def _execute(self, intent: ToolCallIntent) -> Iterator[StreamEvent]:
        report = self.report
        name = intent.function.name
        args = parse_arguments(intent.function.arguments)
        call_id = intent.id or new_call_id()

        yield ToolInputAvailable(tool_call_id=call_id, tool_name=name, input=args)
        emit_trace(self._tracer, "tool_start", {"id": call_id, "tool": name, "args": args})
        outcome = self._executor.execute(name, args, self._context)
        emit_trace(
            self._tracer, "tool_done", {"id": call_id, "tool": name, "status": outcome.status}
        )

        if outcome.status == "suspended":
            report.state = LoopState.SUSPENDED
            yield ToolOutputAvailable(tool_call_id=call_id, output=outcome.output)
            return
        if outcome.status == "completed":
            result = ToolResult(tool_call_id=call_id, tool_name=name, result=outcome.output)
            yield ToolOutputAvailable(tool_call_id=call_id, output=outcome.output)
            report.turns.append(result.to_tool_turn())
            report.results.append(result)
