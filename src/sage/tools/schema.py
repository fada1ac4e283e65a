from __future__ import annotations

from typing import Any

SEARCH_WEB = "searchWeb"
GET_USER_INFO = "getUserInfo"
SET_REMINDER = "setReminder"

TOOLS_SCHEMA: list[dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": SEARCH_WEB,
            "description": "Search the web for current information on any topic.",
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "The search query"},
                },
                "required": ["query"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": GET_USER_INFO,
            "description": (
                "Get the user's browser timezone, locale, and local time. "
                "Runs in the user's browser."
            ),
            "parameters": {"type": "object", "properties": {}},
        },
    },
    {
        "type": "function",
        "function": {
            "name": SET_REMINDER,
            "description": "Schedule a reminder for the user. Always requires user approval first.",
            "parameters": {
                "type": "object",
                "properties": {
                    "message": {"type": "string", "description": "The reminder message"},
                    "delaySeconds": {
                        "type": "number",
                        "description": "Seconds from now to trigger",
                    },
                },
                "required": ["message", "delaySeconds"],
            },
        },
    },
]


def tool_names() -> list[str]:
    return [entry["function"]["name"] for entry in TOOLS_SCHEMA]


def schema_for(name: str) -> dict[str, Any]:
    for entry in TOOLS_SCHEMA:
        if entry["function"]["name"] == name:
            return entry
    raise KeyError(name)
