from __future__ import annotations

import argparse
import json
import logging
import time
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable

from sage.backends import Backend, backend_for, list_backends
from sage.backends.fake import FakeBackend, tool_call
from sage.config import Settings, load_settings
from sage.core.events import (
    ErrorEvent,
    StreamEvent,
    TextDelta,
    ToolInputAvailable,
    ToolOutputAvailable,
)
from sage.core.messages import ConversationMessage, TextPart, ToolPart
from sage.core.types import ModelReply
from sage.runtime.scheduler import ManualScheduler
from sage.runtime.sessions import SessionManager
from sage.tools.schema import GET_USER_INFO
from sage.tools.user_info_tool import local_user_info


def _build_backend(args: argparse.Namespace, settings: Settings) -> Backend:
    backend_name = getattr(args, "backend", None) or settings.backend
    overrides: dict[str, Any] = {"model": getattr(args, "model", None)}
    if backend_name == "llama":
        overrides["base_url"] = getattr(args, "llama_url", None)
    return backend_for(settings, backend_name, **overrides)


def _settings(args: argparse.Namespace) -> Settings:
    settings = load_settings()
    if getattr(args, "data_root", None):
        settings = settings.with_data_root(Path(args.data_root))
    return settings


def _user_message(text: str) -> ConversationMessage:
    return ConversationMessage(role="user", parts=(TextPart(text=text),), id=uuid.uuid4().hex)


def _render(events: Iterable[StreamEvent]) -> tuple[str, list[ToolInputAvailable]]:
    """Print tool activity as it happens and return the text plus any suspended calls."""
    text_parts: list[str] = []
    announced: dict[str, ToolInputAvailable] = {}
    waiting: list[ToolInputAvailable] = []
    for event in events:
        if isinstance(event, TextDelta):
            text_parts.append(event.delta)
        elif isinstance(event, ToolInputAvailable):
            announced[event.tool_call_id] = event
            print(f"[tool] {event.tool_name} {json.dumps(event.input)}")
        elif isinstance(event, ToolOutputAvailable):
            call = announced.get(event.tool_call_id)
            if call is not None and call.tool_name == GET_USER_INFO:
                waiting.append(call)
                continue
            print(f"[tool] -> {json.dumps(event.output)}")
        elif isinstance(event, ErrorEvent):
            text_parts.append(event.error_text)
    return "".join(text_parts), waiting


def _fulfil_locally(
    history: list[ConversationMessage], calls: list[ToolInputAvailable]
) -> list[ConversationMessage]:
    """Answer client-side tools the way a browser would and return the follow-up history."""
    outputs = {call.tool_call_id: local_user_info() for call in calls}
    updated: list[ConversationMessage] = []
    for message in history:
        parts = []
        for part in message.parts:
            if isinstance(part, ToolPart) and part.tool_call_id in outputs:
                part = replace(part, state="output-available", output=outputs[part.tool_call_id])
            parts.append(part)
        updated.append(replace(message, parts=tuple(parts)))
    updated.append(
        ConversationMessage(
            role="user",
            parts=tuple(
                ToolPart(
                    tool_call_id=call.tool_call_id,
                    tool_name=call.tool_name,
                    state="output-available",
                    input=call.input,
                    output=outputs[call.tool_call_id],
                )
                for call in calls
            ),
            id=uuid.uuid4().hex,
        )
    )
    return updated


def _converse(manager: SessionManager, session_id: str, text: str) -> str:
    history = manager.messages(session_id) + [_user_message(text)]
    final_text, waiting = _render(manager.submit_turn(session_id, history))
    while waiting:
        print(f"[tool] {GET_USER_INFO} answered locally")
        time.sleep(manager.settings.min_request_interval_s)
        history = _fulfil_locally(manager.messages(session_id), waiting)
        final_text, waiting = _render(manager.submit_turn(session_id, history))
    return final_text


def _run_command(args: argparse.Namespace) -> int:
    settings = _settings(args)
    manager = SessionManager(_build_backend(args, settings), settings)
    print(_converse(manager, args.session, args.text))
    return 0


def _repl_command(args: argparse.Namespace) -> int:
    settings = _settings(args)
    manager = SessionManager(_build_backend(args, settings), settings)
    while True:
        try:
            line = input("> ")
        except EOFError:
            break
        if line.strip() == "/exit":
            break
        if not line.strip():
            continue
        print(_converse(manager, args.session, line))
    return 0


def _build_smoke_backend() -> FakeBackend:
    backend = FakeBackend()
    backend.extend_replies(
        [
            ModelReply(
                tool_calls=[
                    tool_call("setReminder", {"message": "drink water", "delaySeconds": 60})
                ]
            ),
            ModelReply(response="Reminder set for one minute from now."),
        ]
    )
    return backend


def _smoke_command(args: argparse.Namespace) -> int:
    settings = _settings(args)
    if not getattr(args, "data_root", None):
        settings = settings.with_data_root(Path("data") / "smoke")
    manager = SessionManager(
        _build_smoke_backend(),
        settings,
        scheduler_factory=lambda dispatch: ManualScheduler(dispatch=dispatch),
    )
    final_text = _converse(manager, args.session, "Remind me to drink water in a minute")
    manager.scheduler.advance(60)
    session = manager.get(args.session)

    print("Smoke run complete.")
    print(f"Final answer: {final_text}")
    print(f"Pending reminders: {len(session.reminders)}")
    for reminder in session.reminders:
        print(f"  {reminder}")
    print(f"Checkpoint saved: {manager.checkpoint_dir / (args.session + '.json')}")
    return 0


def _serve_command(args: argparse.Namespace) -> int:
    from sage.server.app import serve

    return serve(args.host, args.port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sage")
    parser.add_argument("--log-level", default="WARNING")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a single turn")
    run_parser.add_argument("--session", default="demo-1")
    run_parser.add_argument("--text", required=True)
    run_parser.add_argument("--backend", choices=list_backends())
    run_parser.add_argument("--model")
    run_parser.add_argument("--llama-url")
    run_parser.add_argument("--data-root")
    run_parser.set_defaults(func=_run_command)

    repl_parser = subparsers.add_parser("repl", help="Run an interactive REPL")
    repl_parser.add_argument("--session", default="demo-1")
    repl_parser.add_argument("--backend", choices=list_backends())
    repl_parser.add_argument("--model")
    repl_parser.add_argument("--llama-url")
    repl_parser.add_argument("--data-root")
    repl_parser.set_defaults(func=_repl_command)

    smoke_parser = subparsers.add_parser("smoke", help="Run the scripted reminder demo")
    smoke_parser.add_argument("--session", default="smoke-1")
    smoke_parser.add_argument("--data-root")
    smoke_parser.set_defaults(func=_smoke_command)

    serve_parser = subparsers.add_parser("serve", help="Serve the chat HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8787)
    serve_parser.set_defaults(func=_serve_command)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper())
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
