"""
HTTP API for the Academic Admin Assistant.

Endpoints:
- GET    /health
- GET    /v1/actions
- POST   /v1/chat
- POST   /v1/chat/confirm
- GET    /v1/sessions/{session_id}/messages
- DELETE /v1/sessions/{session_id}
- POST   /v1/users/import
- GET    /v1/users/template

Envelopes are returned with camelCase keys (introText, needsConfirmation, ...).
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from main import Pipeline, build_pipeline
from shared.models import ApprovalDecision, ResponseEnvelope
from storage.academic_store import USER_IMPORT_COLUMNS, USER_IMPORT_TEMPLATE


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    session_id: str | None = None
    provider: str | None = None


class ConfirmRequest(BaseModel):
    session_id: str
    approved: bool
    pending_id: str | None = None


class UserImportRequest(BaseModel):
    rows: list[dict[str, Any]] = Field(default_factory=list)


def _envelope_payload(session_id: str, envelope: ResponseEnvelope) -> dict[str, Any]:
    return {"sessionId": session_id, **envelope.to_payload()}


def create_app(pipeline: Pipeline | None = None) -> FastAPI:
    """Build the FastAPI app; a prebuilt pipeline is used as-is and not closed."""

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        owned = pipeline is None
        _app.state.pipeline = pipeline or build_pipeline()
        yield
        if owned:
            _app.state.pipeline.close()

    app = FastAPI(
        title="Academic Admin Assistant API",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/v1/actions")
    def list_actions() -> dict[str, Any]:
        return {"actions": app.state.pipeline.registry.catalog()}

    @app.post("/v1/chat")
    async def chat(request: ChatRequest) -> dict[str, Any]:
        session_id = request.session_id or str(uuid.uuid4())[:8]
        envelope = await app.state.pipeline.loop.chat(session_id, request.message, provider=request.provider)
        return _envelope_payload(session_id, envelope)

    @app.post("/v1/chat/confirm")
    async def confirm(request: ConfirmRequest) -> dict[str, Any]:
        decision = ApprovalDecision(approved=request.approved, pending_id=request.pending_id)
        envelope = await app.state.pipeline.loop.confirm(request.session_id, decision)
        return _envelope_payload(request.session_id, envelope)

    @app.get("/v1/sessions/{session_id}/messages")
    def session_messages(session_id: str, limit: int = 50) -> dict[str, Any]:
        messages = app.state.pipeline.conversation.get_history(session_id, limit=limit)
        return {
            "sessionId": session_id,
            "messages": [
                {
                    "role": message.role,
                    "content": message.content,
                    **({"response": message.response.to_payload()} if message.response else {}),
                }
                for message in messages
            ],
        }

    @app.delete("/v1/sessions/{session_id}")
    def clear_session(session_id: str) -> dict[str, str]:
        app.state.pipeline.conversation.clear_session(session_id)
        app.state.pipeline.gate.discard(session_id)
        return {"status": "cleared", "sessionId": session_id}

    @app.post("/v1/users/import")
    def import_users(request: UserImportRequest) -> dict[str, Any]:
        if not request.rows:
            raise HTTPException(status_code=400, detail="No rows to import.")
        report = app.state.pipeline.store.import_users(request.rows)
        return {
            "totalRows": report.total_rows,
            "successCount": report.success_count,
            "errors": report.errors,
        }

    @app.get("/v1/users/template")
    def user_template() -> dict[str, Any]:
        return {"columns": list(USER_IMPORT_COLUMNS), "rows": [dict(row) for row in USER_IMPORT_TEMPLATE]}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    from shared.config import AppSettings

    settings = AppSettings.from_env()
    uvicorn.run("api.server:app", host=settings.api_host, port=settings.api_port)
