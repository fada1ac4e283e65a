from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

ToolHandler = Callable[..., Any]


@dataclass(slots=True)
class ToolSpec:
    name: str
    handler: ToolHandler
    schema: dict[str, Any] | None = None


class ToolRegistry:
    """Tool handlers by name, plus the function schema each one advertises to the model."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}

    def register(
        self, name: str, handler: ToolHandler, schema: dict[str, Any] | None = None
    ) -> None:
        if name in self._tools:
            raise ValueError(f"Tool '{name}' is already registered")
        if schema is not None and schema.get("function", {}).get("name") != name:
            raise ValueError(f"schema for '{name}' advertises a different function name")
        self._tools[name] = ToolSpec(name=name, handler=handler, schema=schema)

    def get(self, name: str) -> ToolSpec | None:
        return self._tools.get(name)

    def list_tools(self) -> list[ToolSpec]:
        return list(self._tools.values())

    def advertised(self) -> list[dict[str, Any]]:
        return [spec.schema for spec in self._tools.values() if spec.schema is not None]
