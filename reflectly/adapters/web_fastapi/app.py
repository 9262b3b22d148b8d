"""FastAPI JSON adapter — thin translation layer, no orchestration logic."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from reflectly import create_companion
from reflectly.config import CompanionConfig
from reflectly.engine.companion import Companion
from reflectly.engine.errors import InvocationError, SummaryError
from reflectly.engine.models import Intent, SessionStats, Tone

logger = logging.getLogger(__name__)


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ChatRequest(_Body):
    session_id: str = Field(alias="sessionId", min_length=6)
    text: str = Field(min_length=1, max_length=2000)
    tone: Tone = Tone.NEUTRAL
    intent: Intent = Intent.GO_DEEP


class SummaryRequest(_Body):
    session_id: str = Field(alias="sessionId", min_length=6)


class EndSessionRequest(_Body):
    session_id: str = Field(alias="sessionId", min_length=6)
    stats: SessionStats


def create_app(
    companion: Companion | None = None,
    config: CompanionConfig | None = None,
) -> FastAPI:
    config = config or CompanionConfig.from_env()
    companion = companion or create_companion(config)
    app = FastAPI(title="Reflectly API", version="0.1.0")

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse({"error": "BAD_REQUEST"}, status_code=400)

    @app.post("/api/chat")
    async def chat(body: ChatRequest) -> JSONResponse:
        payload = await companion.chat(body.session_id, body.text, tone=body.tone, intent=body.intent)
        return JSONResponse(payload)

    @app.post("/api/summary")
    async def summary(body: SummaryRequest) -> JSONResponse:
        try:
            result = await companion.summarize(body.session_id)
        except SummaryError:
            logger.exception("summary failed for session=%s", body.session_id)
            return JSONResponse({"error": "SUMMARY_ERROR"}, status_code=500)
        return JSONResponse(result.to_payload())

    @app.post("/api/session/end")
    async def end_session(body: EndSessionRequest) -> Response:
        await companion.end_session(body.session_id, body.stats)
        return Response(status_code=204)

    @app.get("/api/health")
    async def health() -> JSONResponse:
        return JSONResponse({
            "ok": True,
            "model": config.model_preference or "auto",
            "time": datetime.now(timezone.utc).isoformat(),
            "env": {"hasKey": config.has_key, "mock": config.use_mock_llm},
        })

    @app.get("/api/diag/env")
    async def diag_env() -> JSONResponse:
        key = config.api_key.strip()
        return JSONResponse({
            "hasKey": bool(key),
            "keyLen": len(key),
            "keyPrefix": key[:6],
            "model": config.model_preference or "auto",
            "candidates": config.candidates,
        })

    @app.get("/api/diag/ping")
    async def diag_ping() -> JSONResponse:
        try:
            result = await companion.ping()
        except InvocationError as exc:
            logger.warning("ping failed: %s", exc)
            return JSONResponse(
                {"error": True, "type": type(exc).__name__, "message": str(exc)},
                status_code=500,
            )
        return JSONResponse(result.to_payload())

    return app


def serve() -> None:
    """Entry-point for ``reflectly-web`` console script."""
    import uvicorn

    uvicorn.run(
        "reflectly.adapters.web_fastapi.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=CompanionConfig.from_env().port,
        log_level="info",
    )
