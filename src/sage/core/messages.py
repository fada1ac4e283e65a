"""UI-facing conversation messages and their JSON wire shape.

A message is a role plus an ordered list of parts. Parts are a closed union
of :class:`TextPart` and :class:`ToolPart`; code that consumes parts should
branch on the concrete type and treat anything else as a programming error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

ToolState = Literal["pending", "approval-required", "rejected", "output-available"]
MessageRole = Literal["user", "assistant"]

UNKNOWN_TOOL_NAME = "unknown"
TOOL_STATES: tuple[str, ...] = ("pending", "approval-required", "rejected", "output-available")

# UI lifecycle names that collapse onto the four states above.
_STATE_ALIASES = {
    "input-streaming": "pending",
    "input-available": "pending",
    "approval-requested": "approval-required",
    "output-denied": "rejected",
}


@dataclass(frozen=True, slots=True)
class TextPart:
    text: str


@dataclass(frozen=True, slots=True)
class ToolPart:
    tool_call_id: str
    tool_name: str
    state: ToolState
    input: Any = None
    output: Any = None


Part = Union[TextPart, ToolPart]


@dataclass(frozen=True, slots=True)
class ConversationMessage:
    role: MessageRole
    parts: tuple[Part, ...] = field(default_factory=tuple)
    id: str = ""

    def text(self) -> str:
        return "\n".join(part.text for part in self.parts if isinstance(part, TextPart))

    def tool_parts(self) -> list[ToolPart]:
        return [part for part in self.parts if isinstance(part, ToolPart)]


def _coerce_state(value: Any) -> ToolState:
    if not isinstance(value, str):
        return "pending"
    if value in TOOL_STATES:
        return value  # type: ignore[return-value]
    return _STATE_ALIASES.get(value, "pending")  # type: ignore[return-value]


def _tool_name_for(item: dict[str, Any]) -> str:
    name = item.get("toolName")
    if isinstance(name, str) and name:
        return name
    part_type = item.get("type")
    if isinstance(part_type, str) and part_type.startswith("tool-"):
        suffix = part_type[len("tool-") :]
        if suffix:
            return suffix
    return UNKNOWN_TOOL_NAME


def parse_part(item: Any) -> Part | None:
    if not isinstance(item, dict):
        raise ValueError("message parts must be objects")
    part_type = item.get("type")
    if part_type == "text":
        text = item.get("text")
        if not isinstance(text, str):
            raise ValueError("text parts must include a text string")
        return TextPart(text=text)
    if isinstance(part_type, str) and (part_type.startswith("tool-") or part_type == "dynamic-tool"):
        call_id = item.get("toolCallId")
        if not isinstance(call_id, str):
            raise ValueError("tool parts must include a toolCallId string")
        return ToolPart(
            tool_call_id=call_id,
            tool_name=_tool_name_for(item),
            state=_coerce_state(item.get("state")),
            input=item.get("input"),
            output=item.get("output"),
        )
    return None


def parse_message(item: Any) -> ConversationMessage | None:
    if not isinstance(item, dict):
        raise ValueError("messages must be objects")
    role = item.get("role")
    if role not in ("user", "assistant"):
        return None
    raw_parts = item.get("parts")
    if raw_parts is None:
        raw_parts = []
    if not isinstance(raw_parts, list):
        raise ValueError("message parts must be a list")
    parts = tuple(part for part in (parse_part(raw) for raw in raw_parts) if part is not None)
    message_id = item.get("id")
    return ConversationMessage(
        role=role,
        parts=parts,
        id=message_id if isinstance(message_id, str) else "",
    )


def parse_messages(payload: Any) -> list[ConversationMessage]:
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise ValueError("messages must be a list")
    messages: list[ConversationMessage] = []
    for item in payload:
        message = parse_message(item)
        if message is not None:
            messages.append(message)
    return messages


def dump_part(part: Part) -> dict[str, Any]:
    if isinstance(part, TextPart):
        return {"type": "text", "text": part.text}
    if isinstance(part, ToolPart):
        payload: dict[str, Any] = {
            "type": f"tool-{part.tool_name}",
            "toolCallId": part.tool_call_id,
            "toolName": part.tool_name,
            "state": part.state,
        }
        if part.input is not None:
            payload["input"] = part.input
        if part.output is not None:
            payload["output"] = part.output
        return payload
    raise TypeError(f"unsupported message part: {type(part).__name__}")


def dump_message(message: ConversationMessage) -> dict[str, Any]:
    return {
        "id": message.id,
        "role": message.role,
        "parts": [dump_part(part) for part in message.parts],
    }


def dump_messages(messages: list[ConversationMessage]) -> list[dict[str, Any]]:
    return [dump_message(message) for message in messages]
