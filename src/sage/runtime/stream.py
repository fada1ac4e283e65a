from __future__ import annotations

import json
import uuid
from typing import Iterable, Iterator

from sage.core.events import (
    ErrorEvent,
    StreamEvent,
    TextDelta,
    TextEnd,
    TextStart,
    ToolInputAvailable,
    ToolOutputAvailable,
)
from sage.core.messages import ConversationMessage, Part, TextPart, ToolPart
from sage.tools.user_info_tool import PENDING_OUTPUT

SSE_DONE = "data: [DONE]\n\n"


def encode_sse(event: StreamEvent) -> str:
    return f"data: {json.dumps(event.to_wire(), ensure_ascii=False)}\n\n"


def iter_sse(events: Iterable[StreamEvent]) -> Iterator[str]:
    try:
        for event in events:
            yield encode_sse(event)
        yield SSE_DONE
    finally:
        close = getattr(events, "close", None)
        if close is not None:
            close()


def assistant_message_from_events(
    events: Iterable[StreamEvent], message_id: str | None = None
) -> ConversationMessage | None:
    """Fold a turn's emitted events into the assistant message to persist."""
    parts: list[Part] = []
    texts: dict[str, list[str]] = {}
    tool_index: dict[str, int] = {}
    for event in events:
        if isinstance(event, TextStart):
            texts[event.id] = []
        elif isinstance(event, TextDelta):
            texts.setdefault(event.id, []).append(event.delta)
        elif isinstance(event, TextEnd):
            parts.append(TextPart(text="".join(texts.pop(event.id, []))))
        elif isinstance(event, ToolInputAvailable):
            tool_index[event.tool_call_id] = len(parts)
            parts.append(
                ToolPart(
                    tool_call_id=event.tool_call_id,
                    tool_name=event.tool_name,
                    state="pending",
                    input=event.input,
                )
            )
        elif isinstance(event, ToolOutputAvailable):
            index = tool_index.get(event.tool_call_id)
            if index is None or event.output == PENDING_OUTPUT:
                continue
            pending = parts[index]
            if isinstance(pending, ToolPart):
                parts[index] = ToolPart(
                    tool_call_id=pending.tool_call_id,
                    tool_name=pending.tool_name,
                    state="output-available",
                    input=pending.input,
                    output=event.output,
                )
        elif isinstance(event, ErrorEvent):
            continue
        else:
            raise TypeError(f"unsupported stream event: {type(event).__name__}")
    if not parts:
        return None
    return ConversationMessage(
        role="assistant",
        parts=tuple(parts),
        id=message_id or f"msg-{uuid.uuid4().hex[:16]}",
    )
