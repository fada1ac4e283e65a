"""Turn UI-shaped conversation history into model-native turns."""

from __future__ import annotations

import json
from datetime import date
from typing import Iterable

from sage.core.messages import UNKNOWN_TOOL_NAME, ConversationMessage, TextPart, ToolPart
from sage.core.types import FunctionCall, ModelTurn, ToolCallIntent
from sage.prompts import render_prompt

REJECTED_TOOL_CONTENT = "Tool execution was rejected by the user."
SYSTEM_PROMPT_PATH = "system/assistant.txt"

_ANSWERED_STATES = ("output-available", "rejected")
_CALLED_STATES = ("output-available", "approval-required", "rejected")


def _joined_text(message: ConversationMessage) -> str:
    texts: list[str] = []
    for part in message.parts:
        if isinstance(part, TextPart):
            texts.append(part.text)
        elif not isinstance(part, ToolPart):
            raise TypeError(f"unsupported message part: {type(part).__name__}")
    return "\n".join(texts)


def _tool_result_turn(part: ToolPart) -> ModelTurn:
    if part.state == "rejected":
        content = REJECTED_TOOL_CONTENT
    else:
        content = json.dumps(part.output, ensure_ascii=False)
    return ModelTurn(
        role="tool",
        tool_call_id=part.tool_call_id,
        name=part.tool_name,
        content=content,
    )


def _tool_call_intent(part: ToolPart) -> ToolCallIntent:
    arguments = part.input if part.input is not None else {}
    return ToolCallIntent(
        id=part.tool_call_id,
        function=FunctionCall(
            name=part.tool_name or UNKNOWN_TOOL_NAME,
            arguments=json.dumps(arguments, ensure_ascii=False),
        ),
    )


def to_model_turns(messages: Iterable[ConversationMessage]) -> list[ModelTurn]:
    turns: list[ModelTurn] = []
    for message in messages:
        text = _joined_text(message)
        tool_parts = message.tool_parts()
        if message.role == "user":
            if text:
                turns.append(ModelTurn(role="user", content=text))
            for part in tool_parts:
                if part.state in _ANSWERED_STATES:
                    turns.append(_tool_result_turn(part))
        elif message.role == "assistant":
            turns.append(ModelTurn(role="assistant", content=text))
            calls = [_tool_call_intent(part) for part in tool_parts if part.state in _CALLED_STATES]
            if calls:
                turns.append(ModelTurn(role="assistant", content="", tool_calls=calls))
        else:
            raise ValueError(f"unsupported message role: {message.role!r}")
    return turns


def last_user_text(turns: Iterable[ModelTurn]) -> str:
    text = ""
    for turn in turns:
        if turn.role == "user":
            text = turn.content
    return text


def format_today(today: date) -> str:
    return f"{today:%A}, {today:%B} {today.day}, {today.year}"


def build_system_prompt(reminders: list[str], today: date | None = None) -> str:
    today = today or date.today()
    content = render_prompt(SYSTEM_PROMPT_PATH, today=format_today(today))
    if reminders:
        content += "\n\nACTIVE REMINDERS:\n" + "\n".join(reminders) + "\nInform the user."
    return content
