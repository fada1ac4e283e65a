"""Policies deciding whether a model's tool-call intent may run.

Every guard takes the tool names already invoked this turn, the candidate
intent and the normalized history, and returns a :class:`GuardDecision`.
``None`` means the guard has no objection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Sequence

from sage.config import DEFAULT_TRIGGER_WORDS
from sage.core.types import ModelTurn, ToolCallIntent
from sage.runtime.normalizer import last_user_text
from sage.tools.schema import SEARCH_WEB


class Verdict(str, Enum):
    EXECUTE = "execute"
    SKIP = "skip"
    ABORT = "abort"


@dataclass(frozen=True, slots=True)
class GuardDecision:
    verdict: Verdict
    reason: str = ""
    message: str | None = None

    @property
    def aborts(self) -> bool:
        return self.verdict is Verdict.ABORT


EXECUTE = GuardDecision(Verdict.EXECUTE)

Guard = Callable[[Sequence[str], ToolCallIntent, Sequence[ModelTurn]], "GuardDecision | None"]


def repeated_call_message(tool_name: str) -> str:
    return (
        f"System Error: The AI attempted to call the {tool_name} tool repeatedly. "
        "Aborting to prevent infinite loop."
    )


def single_tool_guard(
    invoked: Sequence[str], call: ToolCallIntent, _history: Sequence[ModelTurn]
) -> GuardDecision | None:
    if invoked and call.function.name not in invoked:
        return GuardDecision(Verdict.ABORT, reason="single_tool_limit")
    return None


def repeat_call_guard(
    invoked: Sequence[str], call: ToolCallIntent, _history: Sequence[ModelTurn]
) -> GuardDecision | None:
    name = call.function.name
    if name in invoked:
        return GuardDecision(
            Verdict.ABORT,
            reason="repeated_call",
            message=repeated_call_message(name),
        )
    return None


def search_trigger_guard(
    trigger_words: Iterable[str] = DEFAULT_TRIGGER_WORDS,
) -> Guard:
    words = tuple(word.lower() for word in trigger_words)

    def guard(
        _invoked: Sequence[str], call: ToolCallIntent, history: Sequence[ModelTurn]
    ) -> GuardDecision | None:
        if call.function.name != SEARCH_WEB:
            return None
        text = last_user_text(history).lower()
        if any(word in text for word in words):
            return None
        return GuardDecision(Verdict.SKIP, reason="search_not_requested")

    return guard


@dataclass(slots=True)
class GuardPolicy:
    """Runs guards in order; the first objection wins."""

    guards: list[Guard] = field(default_factory=list)

    def check(
        self,
        invoked: Sequence[str],
        call: ToolCallIntent,
        history: Sequence[ModelTurn],
    ) -> GuardDecision:
        for guard in self.guards:
            decision = guard(invoked, call, history)
            if decision is not None:
                return decision
        return EXECUTE


def default_policy(trigger_words: Iterable[str] = DEFAULT_TRIGGER_WORDS) -> GuardPolicy:
    return GuardPolicy(
        guards=[single_tool_guard, repeat_call_guard, search_trigger_guard(trigger_words)]
    )
