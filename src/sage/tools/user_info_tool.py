from __future__ import annotations

import locale
import time
from datetime import datetime
from typing import Any

from sage.tools.results import ToolOutcome

PENDING_OUTPUT: dict[str, Any] = {"pending": True, "message": "Waiting for browser..."}


def user_info_handler() -> Any:
    # Only the client knows these facts; the turn suspends until it sends them.
    def handler(_args: dict[str, Any]) -> ToolOutcome:
        return ToolOutcome.suspended(dict(PENDING_OUTPUT))

    return handler


def local_user_info() -> dict[str, Any]:
    """What a client reports for ``getUserInfo`` when it fulfils the call locally."""
    now = datetime.now().astimezone()
    language, _encoding = locale.getlocale()
    return {
        "timezone": now.tzname() or time.tzname[0],
        "locale": (language or "en_US").replace("_", "-"),
        "localTime": now.strftime("%I:%M:%S %p").lstrip("0"),
    }
