from __future__ import annotations

import json
import logging
import os
import urllib.request
from dataclasses import dataclass, field
from typing import Any

from sage.backends.llama_server import parse_openai_tool_calls
from sage.backends.registry import register_backend
from sage.config import env_float
from sage.core.types import FunctionCall, ModelReply, ModelTurn, ToolCallIntent

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "@cf/meta/llama-3.1-8b-instruct"
_API_ROOT = "https://api.cloudflare.com/client/v4/accounts"


def _parse_tool_calls(raw_calls: Any) -> list[ToolCallIntent]:
    """Workers AI returns either OpenAI-style calls or flat ``{name, arguments}``."""
    if not isinstance(raw_calls, list):
        return []
    calls: list[ToolCallIntent] = []
    for item in raw_calls:
        if not isinstance(item, dict):
            continue
        if isinstance(item.get("function"), dict):
            calls.extend(parse_openai_tool_calls([item]))
            continue
        name = item.get("name")
        if not isinstance(name, str):
            continue
        arguments = item.get("arguments")
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
class WorkersAIBackend:
    account_id: str | None = field(default_factory=lambda: os.getenv("CLOUDFLARE_ACCOUNT_ID"))
    api_token: str | None = field(default_factory=lambda: os.getenv("CLOUDFLARE_API_TOKEN"))
    model: str = field(default_factory=lambda: os.getenv("WORKERS_AI_MODEL", DEFAULT_MODEL))
    timeout_s: float = field(default_factory=lambda: env_float("WORKERS_AI_TIMEOUT_S", 60.0))

    @property
    def url(self) -> str:
        if not self.account_id:
            raise ValueError("CLOUDFLARE_ACCOUNT_ID is required for the workers_ai backend")
        return f"{_API_ROOT}/{self.account_id}/ai/run/{self.model}"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    @staticmethod
    def _extract_reply(data: dict[str, Any]) -> ModelReply:
        result = data.get("result")
        if not isinstance(result, dict):
            errors = data.get("errors")
            raise ValueError(f"workers_ai returned no result: {errors!r}")
        response = result.get("response")
        return ModelReply(
            response=response if isinstance(response, str) else None,
            tool_calls=_parse_tool_calls(result.get("tool_calls")),
        )

    def chat(
        self,
        messages: list[ModelTurn],
        tools: list[dict[str, Any]],
        max_tokens: int = 512,
    ) -> ModelReply:
        payload = {
            "messages": [turn.to_payload() for turn in messages],
            "tools": tools,
            "stream": False,
            "max_tokens": max_tokens,
        }
        request = urllib.request.Request(
            self.url,
            data=json.dumps(payload).encode("utf-8"),
            headers=self._headers(),
            method="POST",
        )
        logger.debug("workers_ai request for %s with %d messages", self.model, len(messages))
        with urllib.request.urlopen(request, timeout=self.timeout_s) as response:
            body = response.read().decode("utf-8")
        return self._extract_reply(json.loads(body))


register_backend("workers_ai", WorkersAIBackend)
