"""
HTTP interface for snipbox using FastAPI.

Run endpoints are plain ``def`` handlers so FastAPI executes them in its
threadpool; a snippet that runs to its deadline never blocks the event loop.
"""

from typing import Any

from fastapi import Body, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from .core.config import SnipboxConfig
from .core.logging import get_logger
from .dialects.transpilers import detect_transpiler_health
from .engine import SnippetEngine
from .types import RunRequest

logger = get_logger(__name__)


class RunPayload(BaseModel):
    """Body of ``POST /api/run``."""

    dialect: str = "python"
    code: str = ""
    deadline_seconds: float | None = Field(default=None, gt=0)


class RunTempPayload(BaseModel):
    """Body of ``POST /api/runTemp``."""

    lang: str = "python"
    code: str = ""


def create_app(
    config: SnipboxConfig | None = None,
    engine: SnippetEngine | None = None,
) -> FastAPI:
    """Build the FastAPI application."""
    config = config or SnipboxConfig()
    engine = engine or SnippetEngine(config.engine)
    max_body_bytes = config.server.max_body_bytes

    app = FastAPI(title="snipbox")
    app.state.engine = engine
    app.state.config = config

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > max_body_bytes:
            return JSONResponse(
                status_code=413,
                content={"detail": f"Request body exceeds {max_body_bytes} bytes"},
            )
        return await call_next(request)

    @app.post("/api/run")
    def run(payload: RunPayload) -> dict[str, str]:
        response = engine.run(
            RunRequest(
                dialect=payload.dialect,
                source=payload.code,
                deadline_seconds=payload.deadline_seconds,
            )
        )
        logger.info(f"POST /api/run dialect={payload.dialect} status={response.status}")
        return response.to_dict()

    @app.post("/api/runTemp", response_class=PlainTextResponse)
    def run_temp(payload: RunTempPayload | None = Body(default=None)) -> PlainTextResponse:
        payload = payload or RunTempPayload()
        response = engine.run(RunRequest(dialect=payload.lang, source=payload.code))
        status_code = 400 if response.status == "dependency-missing" else 200
        return PlainTextResponse(response.text, status_code=status_code)

    @app.get("/api/dialects")
    def dialects() -> list[dict[str, Any]]:
        health = detect_transpiler_health(engine.transpilers)
        return [
            {"dialect": entry.dialect, "available": entry.available, "detail": entry.detail}
            for entry in health.values()
        ]

    @app.post("/api/echo")
    def echo(payload: Any = Body(default=None)) -> dict[str, Any]:
        return {"ok": True, "got": payload}

    @app.get("/healthz", response_class=PlainTextResponse)
    def healthz() -> str:
        return "ok"

    return app


def serve(config: SnipboxConfig, host: str | None = None, port: int | None = None) -> None:
    """Run the HTTP server until interrupted."""
    import uvicorn

    host = host or config.server.host
    port = port or config.server.port
    logger.info(f"snipbox listening on http://{host}:{port}")
    uvicorn.run(create_app(config), host=host, port=port, log_level=config.log_level.lower())
