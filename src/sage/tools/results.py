from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Literal

from sage.core.types import ModelTurn

OutcomeStatus = Literal["completed", "skipped", "suspended"]


@dataclass(frozen=True, slots=True)
class ToolOutcome:
    """What a tool handler did with a call.

    ``completed`` outputs are announced and folded into the next pass,
    ``skipped`` calls leave no trace, and ``suspended`` ends the turn so the
    client can supply the real output in a later request.
    """

    status: OutcomeStatus
    output: Any = None

    @classmethod
    def completed(cls, output: Any) -> "ToolOutcome":
        return cls(status="completed", output=output)

    @classmethod
    def skipped(cls) -> "ToolOutcome":
        return cls(status="skipped")

    @classmethod
    def suspended(cls, placeholder: Any) -> "ToolOutcome":
        return cls(status="suspended", output=placeholder)


@dataclass(frozen=True, slots=True)
class ToolResult:
    tool_call_id: str
    tool_name: str
    result: Any

    def to_tool_turn(self) -> ModelTurn:
        return ModelTurn(
            role="tool",
            tool_call_id=self.tool_call_id,
            name=self.tool_name,
            content=json.dumps(self.result, ensure_ascii=False),
        )
