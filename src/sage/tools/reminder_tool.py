from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sage.tools.context import ToolContext
from sage.tools.results import ToolOutcome

logger = logging.getLogger(__name__)

REMINDER_TASK = "on_task"


class ReminderArgs(BaseModel):
    model_config = ConfigDict(strict=True)

    message: str
    delaySeconds: float = Field(allow_inf_nan=False)


def format_reminder(message: str, fired_at: datetime | None = None) -> str:
    fired_at = fired_at or datetime.now(timezone.utc)
    stamp = fired_at.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return f"⏰ Reminder: {message} (triggered at {stamp.replace('+00:00', 'Z')})"


def set_reminder_handler() -> Any:
    def handler(args: dict[str, Any], context: ToolContext) -> ToolOutcome:
        try:
            parsed = ReminderArgs.model_validate(args)
        except ValidationError as exc:
            logger.warning("dropping setReminder call with invalid input: %s", exc.errors())
            return ToolOutcome.skipped()
        context.scheduler.schedule(
            parsed.delaySeconds,
            REMINDER_TASK,
            {"session_id": context.session_id, "message": parsed.message},
        )
        delay: float | int = parsed.delaySeconds
        if float(delay).is_integer():
            delay = int(delay)
        return ToolOutcome.completed(
            {"scheduled": True, "message": parsed.message, "inSeconds": delay}
        )

    return handler
