from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Literal

from sage.core.messages import ConversationMessage

TurnRole = Literal["system", "user", "assistant", "tool"]


@dataclass(frozen=True, slots=True)
class FunctionCall:
    name: str
    arguments: str = "{}"


@dataclass(frozen=True, slots=True)
class ToolCallIntent:
    id: str
    function: FunctionCall
    type: str = "function"

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "function": {"name": self.function.name, "arguments": self.function.arguments},
        }


@dataclass(slots=True)
class ModelTurn:
    role: TurnRole
    content: str = ""
    tool_call_id: str | None = None
    name: str | None = None
    tool_calls: List[ToolCallIntent] | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_call_id is not None:
            payload["tool_call_id"] = self.tool_call_id
        if self.name is not None:
            payload["name"] = self.name
        if self.tool_calls is not None:
            payload["tool_calls"] = [call.to_payload() for call in self.tool_calls]
        return payload


@dataclass(slots=True)
class ModelReply:
    response: str | None = None
    tool_calls: List[ToolCallIntent] = field(default_factory=list)


@dataclass(slots=True)
class SessionState:
    is_generating: bool = False
    last_request_time: float | None = None
    reminders: List[str] = field(default_factory=list)


@dataclass(slots=True)
class Checkpoint:
    session_id: str
    revision: int
    updated_ts: float
    reminders: List[str] = field(default_factory=list)
    messages: List[ConversationMessage] = field(default_factory=list)
