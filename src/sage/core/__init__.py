"""Core data contracts and utilities."""

from .events import (
    ErrorEvent,
    StreamEvent,
    TextDelta,
    TextEnd,
    TextStart,
    ToolInputAvailable,
    ToolOutputAvailable,
    text_events,
)
from .messages import ConversationMessage, TextPart, ToolPart, parse_messages
from .tracing import TraceEvent, TraceWriter
from .types import (
    Checkpoint,
    FunctionCall,
    ModelReply,
    ModelTurn,
    SessionState,
    ToolCallIntent,
)

__all__ = [
    "Checkpoint",
    "ConversationMessage",
    "ErrorEvent",
    "FunctionCall",
    "ModelReply",
    "ModelTurn",
    "SessionState",
    "StreamEvent",
    "TextDelta",
    "TextEnd",
    "TextPart",
    "TextStart",
    "ToolCallIntent",
    "ToolInputAvailable",
    "ToolOutputAvailable",
    "ToolPart",
    "TraceEvent",
    "TraceWriter",
    "parse_messages",
    "text_events",
]
