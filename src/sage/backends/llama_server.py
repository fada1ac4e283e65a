from __future__ import annotations

import json
import logging
import os
import urllib.request
from dataclasses import dataclass, field
from typing import Any

from sage.backends.registry import register_backend
from sage.config import env_float
from sage.core.types import FunctionCall, ModelReply, ModelTurn, ToolCallIntent

logger = logging.getLogger(__name__)


def parse_openai_tool_calls(raw_calls: Any) -> list[ToolCallIntent]:
    if not isinstance(raw_calls, list):
        return []
    calls: list[ToolCallIntent] = []
    for item in raw_calls:
        if not isinstance(item, dict):
            continue
        function = item.get("function")
        if not isinstance(function, dict):
            continue
        name = function.get("name")
        if not isinstance(name, str):
            continue
        arguments = function.get("arguments")
        if arguments is None:
            arguments = "{}"
        elif not isinstance(arguments, str):
            arguments = json.dumps(arguments)
        call_id = item.get("id")
        calls.append(
            ToolCallIntent(
                id=call_id if isinstance(call_id, str) else "",
                function=FunctionCall(name=name, arguments=arguments),
            )
        )
    return calls


@dataclass(slots=True)
class LlamaServerBackend:
    """OpenAI-compatible ``/v1/chat/completions`` provider (llama-server and friends)."""

    base_url: str = field(
        default_factory=lambda: os.getenv("LLAMA_SERVER_BASE_URL", "http://127.0.0.1:8080")
    )
    timeout_s: float = field(default_factory=lambda: env_float("LLAMA_SERVER_TIMEOUT_S", 60.0))
    api_key: str | None = field(default_factory=lambda: os.getenv("LLAMA_SERVER_API_KEY"))
    model: str | None = field(default_factory=lambda: os.getenv("LLAMA_SERVER_MODEL"))
    temperature: float = 0.0

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _build_payload(
        self,
        messages: list[ModelTurn],
        tools: list[dict[str, Any]],
        max_tokens: int,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "messages": [turn.to_payload() for turn in messages],
            "stream": False,
            "max_tokens": max_tokens,
            "temperature": self.temperature,
        }
        if tools:
            payload["tools"] = tools
        if self.model:
            payload["model"] = self.model
        return payload

    @staticmethod
    def _extract_reply(data: dict[str, Any]) -> ModelReply:
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            return ModelReply(response="")
        first = choices[0]
        if not isinstance(first, dict):
            return ModelReply(response="")
        message = first.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            return ModelReply(
                response=content if isinstance(content, str) else None,
                tool_calls=parse_openai_tool_calls(message.get("tool_calls")),
            )
        text = first.get("text")
        return ModelReply(response=text if isinstance(text, str) else "")

    def chat(
        self,
        messages: list[ModelTurn],
        tools: list[dict[str, Any]],
        max_tokens: int = 512,
    ) -> ModelReply:
        payload = self._build_payload(messages, tools, max_tokens)
        url = f"{self.base_url.rstrip('/')}/v1/chat/completions"
        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(url, data=data, headers=self._headers(), method="POST")
        logger.debug("llama request to %s with %d messages", url, len(messages))
        with urllib.request.urlopen(request, timeout=self.timeout_s) as response:
            body = response.read().decode("utf-8")
        return self._extract_reply(json.loads(body))


register_backend("llama", LlamaServerBackend)
