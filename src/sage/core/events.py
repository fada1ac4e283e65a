from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True, slots=True)
class TextStart:
    id: str

    def to_wire(self) -> dict[str, Any]:
        return {"type": "text-start", "id": self.id}


@dataclass(frozen=True, slots=True)
class TextDelta:
    id: str
    delta: str

    def to_wire(self) -> dict[str, Any]:
        return {"type": "text-delta", "id": self.id, "delta": self.delta}


@dataclass(frozen=True, slots=True)
class TextEnd:
    id: str

    def to_wire(self) -> dict[str, Any]:
        return {"type": "text-end", "id": self.id}


@dataclass(frozen=True, slots=True)
class ToolInputAvailable:
    tool_call_id: str
    tool_name: str
    input: dict[str, Any]

    def to_wire(self) -> dict[str, Any]:
        return {
            "type": "tool-input-available",
            "toolCallId": self.tool_call_id,
            "toolName": self.tool_name,
            "input": self.input,
        }


@dataclass(frozen=True, slots=True)
class ToolOutputAvailable:
    tool_call_id: str
    output: Any

    def to_wire(self) -> dict[str, Any]:
        return {
            "type": "tool-output-available",
            "toolCallId": self.tool_call_id,
            "output": self.output,
        }


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    error_text: str

    def to_wire(self) -> dict[str, Any]:
        return {"type": "error", "errorText": self.error_text}


StreamEvent = Union[TextStart, TextDelta, TextEnd, ToolInputAvailable, ToolOutputAvailable, ErrorEvent]


def new_text_id() -> str:
    return f"msg-{int(time.time() * 1000)}"


def text_events(text: str, message_id: str | None = None) -> list[StreamEvent]:
    """A complete assistant text message as one start/delta/end triplet."""
    message_id = message_id or new_text_id()
    return [
        TextStart(id=message_id),
        TextDelta(id=message_id, delta=text),
        TextEnd(id=message_id),
    ]
