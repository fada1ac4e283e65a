import json
import time
from pathlib import Path

import pytest

from sage.core.messages import ConversationMessage, TextPart, ToolPart
from sage.core.types import Checkpoint
from sage.runtime import checkpoints


def test_load_or_create_defaults(tmp_path: Path) -> None:
    checkpoint = checkpoints.load_or_create("session-1", base_dir=tmp_path)

    assert checkpoint.session_id == "session-1"
    assert checkpoint.revision == 0
    assert isinstance(checkpoint.updated_ts, float)
    assert checkpoint.reminders == []
    assert checkpoint.messages == []


def test_save_checkpoint_increments_revision(tmp_path: Path) -> None:
    checkpoint = checkpoints.load_or_create("session-2", base_dir=tmp_path)

    checkpoints.save_checkpoint(checkpoint, base_dir=tmp_path)
    assert checkpoint.revision == 1

    checkpoints.save_checkpoint(checkpoint, base_dir=tmp_path)
    assert checkpoint.revision == 2
    assert not (tmp_path / "session-2.json.tmp").exists()


def test_checkpoint_roundtrip(tmp_path: Path) -> None:
    checkpoint = Checkpoint(
        session_id="session-3",
        revision=0,
        updated_ts=time.time(),
        reminders=["⏰ Reminder: stretch (triggered at 2026-10-19T12:00:00.000Z)"],
        messages=[
            ConversationMessage(role="user", parts=(TextPart(text="Hello"),), id="m1"),
            ConversationMessage(
                role="assistant",
                parts=(
                    ToolPart(
                        tool_call_id="c1",
                        tool_name="setReminder",
                        state="output-available",
                        input={"message": "stretch", "delaySeconds": 5},
                        output={"scheduled": True, "message": "stretch", "inSeconds": 5},
                    ),
                    TextPart(text="Reminder set."),
                ),
                id="m2",
            ),
        ],
    )

    checkpoints.save_checkpoint(checkpoint, base_dir=tmp_path)
    loaded = checkpoints.load_latest("session-3", base_dir=tmp_path)

    assert loaded is not None
    assert loaded == checkpoint


def test_load_latest_missing_returns_none(tmp_path: Path) -> None:
    assert checkpoints.load_latest("nobody", base_dir=tmp_path) is None


def test_load_latest_rejects_invalid_reminders(tmp_path: Path) -> None:
    path = tmp_path / "session-bad.json"
    payload = {
        "session_id": "session-bad",
        "revision": 1,
        "updated_ts": time.time(),
        "reminders": "not-a-list",
        "messages": [],
    }
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ValueError, match="checkpoint field 'reminders'"):
        checkpoints.load_latest("session-bad", base_dir=tmp_path)


def test_load_latest_rejects_missing_revision(tmp_path: Path) -> None:
    path = tmp_path / "session-bad.json"
    path.write_text(json.dumps({"session_id": "session-bad", "updated_ts": 1.0}), encoding="utf-8")

    with pytest.raises(ValueError, match="revision"):
        checkpoints.load_latest("session-bad", base_dir=tmp_path)


@pytest.mark.parametrize("session_id", ["../../escaped", "..", ".hidden", "a/b", "", "s 1"])
def test_unsafe_session_ids_are_rejected(tmp_path: Path, session_id: str) -> None:
    base_dir = tmp_path / "data" / "checkpoints"

    with pytest.raises(ValueError, match="invalid session id"):
        checkpoints.load_or_create(session_id, base_dir=base_dir)
    checkpoint = Checkpoint(session_id=session_id, revision=0, updated_ts=0.0, reminders=[], messages=[])
    with pytest.raises(ValueError, match="invalid session id"):
        checkpoints.save_checkpoint(checkpoint, base_dir=base_dir)
    assert list(tmp_path.rglob("*.json")) == []
