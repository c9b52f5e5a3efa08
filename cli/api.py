from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse, RedirectResponse

from core.api import ChatRequest, ResetRequest
from core.conversation_engine import ConversationEngine, create_engine


def create_app(engine: Optional[ConversationEngine] = None) -> FastAPI:
    """Build the HTTP app; the engine is created from the environment when not given"""
    engine = engine or create_engine()
    started = time.monotonic()

    app = FastAPI(title="Cold Call Interview API")
    app.state.engine = engine

    @app.get("/", include_in_schema=False)
    def root() -> RedirectResponse:
        return RedirectResponse(url="/docs")

    @app.post("/graph/chat", response_class=PlainTextResponse)
    def chat(body: ChatRequest) -> str:
        return engine.chat(body.username, body.message)

    @app.post("/graph/reset")
    def reset(body: ResetRequest) -> Dict[str, Any]:
        engine.reset(body.username)
        return {"ok": True}

    @app.get("/graph/state/{username}")
    def get_state(username: str) -> Dict[str, Any]:
        return engine.get_state_summary(username)

    @app.get("/logs")
    def list_logs(request: Request) -> Dict[str, Any]:
        files = engine.audit_log.list_log_files()
        return {
            "files": [
                {**f, "url": str(request.url_for("read_log", filename=f["name"]))}
                for f in files
            ]
        }

    @app.get("/logs/{filename}", response_class=PlainTextResponse, name="read_log")
    def read_log(filename: str) -> str:
        try:
            return engine.audit_log.read_log_file(filename)
        except FileNotFoundError:
            raise HTTPException(status_code=404, detail="Log file not found")

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {
            "ok": True,
            "uptime": round(time.monotonic() - started, 3),
            "timestamp": datetime.now().isoformat(),
        }

    return app
