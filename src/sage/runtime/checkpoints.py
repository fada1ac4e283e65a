from __future__ import annotations

import json
import os
import re
import time
from pathlib import Path
from typing import Any

from sage.core.messages import dump_messages, parse_messages
from sage.core.types import Checkpoint

DEFAULT_DIR = Path("data") / "checkpoints"
# Session ids become file names; no separators and no leading dot.
SESSION_ID_PATTERN = r"^[A-Za-z0-9_-][A-Za-z0-9_.-]*$"


def _checkpoint_path(session_id: str, base_dir: Path | None = None) -> Path:
    if not re.fullmatch(SESSION_ID_PATTERN, session_id):
        raise ValueError(f"invalid session id: {session_id!r}")
    root = base_dir or DEFAULT_DIR
    return root / f"{session_id}.json"


def save_checkpoint(checkpoint: Checkpoint, base_dir: Path | None = None) -> Path:
    path = _checkpoint_path(checkpoint.session_id, base_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    checkpoint.revision += 1
    checkpoint.updated_ts = time.time()
    payload = {
        "session_id": checkpoint.session_id,
        "revision": checkpoint.revision,
        "updated_ts": checkpoint.updated_ts,
        "reminders": list(checkpoint.reminders),
        "messages": dump_messages(checkpoint.messages),
    }
    temp_path = path.with_suffix(".json.tmp")
    with temp_path.open("w", encoding="utf-8") as handle:
        handle.write(json.dumps(payload, ensure_ascii=False))
        handle.flush()
        os.fsync(handle.fileno())
    temp_path.replace(path)
    return path


def _ensure_list_of_str(value: Any, field_name: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return value
    raise ValueError(f"checkpoint field '{field_name}' must be list[str]")


def load_latest(session_id: str, base_dir: Path | None = None) -> Checkpoint | None:
    path = _checkpoint_path(session_id, base_dir)
    if not path.exists():
        return None
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("checkpoint payload must be an object")
    if not isinstance(payload.get("session_id"), str):
        raise ValueError("checkpoint session_id must be str")
    if not isinstance(payload.get("revision"), int):
        raise ValueError("checkpoint revision must be int")
    if not isinstance(payload.get("updated_ts"), (float, int)):
        raise ValueError("checkpoint updated_ts must be float")
    return Checkpoint(
        session_id=payload["session_id"],
        revision=payload["revision"],
        updated_ts=payload["updated_ts"],
        reminders=_ensure_list_of_str(payload.get("reminders"), "reminders"),
        messages=parse_messages(payload.get("messages")),
    )


def load_or_create(session_id: str, base_dir: Path | None = None) -> Checkpoint:
    checkpoint = load_latest(session_id, base_dir)
    if checkpoint is not None:
        return checkpoint
    return Checkpoint(
        session_id=session_id,
        revision=0,
        updated_ts=time.time(),
        reminders=[],
        messages=[],
    )
