from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sage.config import Settings

if TYPE_CHECKING:
    from sage.runtime.scheduler import Scheduler


@dataclass(slots=True)
class ToolContext:
    session_id: str
    scheduler: "Scheduler"
    settings: Settings
