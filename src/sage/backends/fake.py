from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Iterable, List

from sage.backends.registry import register_backend
from sage.core.types import FunctionCall, ModelReply, ModelTurn, ToolCallIntent


@dataclass(slots=True)
class FakeBackend:
    """Scripted provider: replays queued replies and records every request."""

    replies: List[ModelReply] = field(default_factory=list)
    calls: List[dict[str, Any]] = field(default_factory=list)

    def chat(
        self,
        messages: list[ModelTurn],
        tools: list[dict[str, Any]],
        max_tokens: int = 512,
    ) -> ModelReply:
        self.calls.append(
            {
                "messages": [turn.to_payload() for turn in messages],
                "tools": tools,
                "stream": False,
                "max_tokens": max_tokens,
            }
        )
        if self.replies:
            return self.replies.pop(0)
        return ModelReply(response="")

    def extend_replies(self, replies: Iterable[ModelReply | dict[str, Any]]) -> None:
        self.replies.extend(coerce_reply(reply) for reply in replies)

    def set_replies(self, replies: Iterable[ModelReply | dict[str, Any]]) -> None:
        self.replies = [coerce_reply(reply) for reply in replies]


def tool_call(name: str, arguments: Any = None, call_id: str = "") -> ToolCallIntent:
    if arguments is None:
        arguments = {}
    encoded = arguments if isinstance(arguments, str) else json.dumps(arguments)
    return ToolCallIntent(id=call_id, function=FunctionCall(name=name, arguments=encoded))


def coerce_reply(reply: ModelReply | dict[str, Any]) -> ModelReply:
    if isinstance(reply, ModelReply):
        return reply
    if not isinstance(reply, dict):
        raise ValueError("fake replies must be objects")
    calls: list[ToolCallIntent] = []
    for item in reply.get("tool_calls") or []:
        if not isinstance(item, dict):
            raise ValueError("fake tool_calls entries must be objects")
        function = item.get("function")
        if isinstance(function, dict):
            name = function.get("name")
            arguments = function.get("arguments")
        else:
            name = item.get("name")
            arguments = item.get("arguments")
        if not isinstance(name, str):
            raise ValueError("fake tool_calls entries must name a function")
        call_id = item.get("id") if isinstance(item.get("id"), str) else ""
        calls.append(tool_call(name, arguments, call_id))
    response = reply.get("response")
    return ModelReply(response=response if isinstance(response, str) else None, tool_calls=calls)


def _load_env_replies(env_value: str) -> list[ModelReply]:
    data = json.loads(env_value)
    if not isinstance(data, list):
        raise ValueError("fake replies must be a JSON list of objects")
    return [coerce_reply(item) for item in data]


def _factory(**_kwargs: Any) -> "FakeBackend":
    backend = FakeBackend()
    replies_json = os.getenv("SAGE_FAKE_REPLIES")
    if replies_json:
        backend.replies = _load_env_replies(replies_json)
    return backend


register_backend("fake", _factory)
