from __future__ import annotations

from sage.tools.context import ToolContext
from sage.tools.executor import ToolExecutor
from sage.tools.registry import ToolRegistry
from sage.tools.reminder_tool import format_reminder, set_reminder_handler
from sage.tools.results import ToolOutcome, ToolResult
from sage.tools.schema import GET_USER_INFO, SEARCH_WEB, SET_REMINDER, TOOLS_SCHEMA, schema_for
from sage.tools.search_tool import search_web, search_web_handler
from sage.tools.user_info_tool import user_info_handler


def build_default_registry() -> tuple[ToolRegistry, ToolExecutor]:
    registry = ToolRegistry()
    registry.register(SEARCH_WEB, search_web_handler(), schema_for(SEARCH_WEB))
    registry.register(GET_USER_INFO, user_info_handler(), schema_for(GET_USER_INFO))
    registry.register(SET_REMINDER, set_reminder_handler(), schema_for(SET_REMINDER))
    executor = ToolExecutor(registry)
    return registry, executor


__all__ = [
    "GET_USER_INFO",
    "SEARCH_WEB",
    "SET_REMINDER",
    "TOOLS_SCHEMA",
    "ToolContext",
    "ToolExecutor",
    "ToolOutcome",
    "ToolRegistry",
    "ToolResult",
    "build_default_registry",
    "format_reminder",
    "search_web",
]
