from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Annotated, Any

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi import Path as PathParam
from fastapi.responses import HTMLResponse, StreamingResponse
from pydantic import BaseModel, Field

from sage.backends import Backend, backend_for
from sage.config import load_settings
from sage.core.messages import dump_messages, parse_messages
from sage.runtime.checkpoints import SESSION_ID_PATTERN
from sage.runtime.sessions import SessionManager
from sage.runtime.stream import iter_sse

logger = logging.getLogger(__name__)

_PLACEHOLDER_PAGE = (
    "<!DOCTYPE html><html><body><h1>Sage Agent</h1>"
    "<p>Assets not configured.</p></body></html>"
)


SessionId = Annotated[str, PathParam(pattern=SESSION_ID_PATTERN)]


class ChatRequest(BaseModel):
    id: str = Field(min_length=1, pattern=SESSION_ID_PATTERN)
    messages: list[dict[str, Any]] = Field(default_factory=list)


def create_app(
    data_root: Path | None = None,
    *,
    backend: Backend | None = None,
    manager: SessionManager | None = None,
) -> FastAPI:
    if manager is None:
        settings = load_settings()
        if data_root is not None:
            settings = settings.with_data_root(data_root)
        if backend is None:
            backend = backend_for(settings)
        manager = SessionManager(backend, settings)

    app = FastAPI()
    app.state.sessions = manager

    @app.get("/", response_class=HTMLResponse)
    async def index() -> str:
        return _PLACEHOLDER_PAGE

    @app.post("/api/chat")
    def chat(payload: ChatRequest) -> StreamingResponse:
        try:
            messages = parse_messages(payload.messages)
        except ValueError as exc:
            logger.warning("rejecting malformed chat payload for %s: %s", payload.id, exc)
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        stream = iter_sse(manager.submit_turn(payload.id, messages))
        cleanup = BackgroundTasks()
        cleanup.add_task(stream.close)
        return StreamingResponse(
            stream,
            background=cleanup,
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "x-vercel-ai-ui-message-stream": "v1"},
        )

    @app.get("/api/sessions/{session_id}/messages")
    def get_messages(session_id: SessionId) -> dict[str, Any]:
        try:
            messages = manager.messages(session_id)
        except ValueError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return {"session_id": session_id, "messages": dump_messages(messages)}

    @app.delete("/api/sessions/{session_id}/messages")
    def clear_messages(session_id: SessionId) -> dict[str, Any]:
        manager.clear_messages(session_id)
        return {"session_id": session_id, "messages": []}

    @app.get("/api/sessions/{session_id}/state")
    def get_state(session_id: SessionId) -> dict[str, Any]:
        session = manager.get(session_id)
        return {
            "session_id": session_id,
            "is_generating": session.is_generating,
            "reminders": session.reminders,
        }

    return app


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="sage-server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8787)
    args = parser.parse_args(argv)
    return serve(args.host, args.port)


def serve(host: str, port: int) -> int:
    try:
        import uvicorn
    except ImportError as exc:
        raise SystemExit("uvicorn is required to run the service") from exc
    uvicorn.run("sage.server.app:create_app", host=host, port=port, factory=True)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
