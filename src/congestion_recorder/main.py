"""FastAPI application entry point."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from congestion_recorder.bootstrap import Recorder
from congestion_recorder.config import Settings, get_settings
from congestion_recorder.logging import (
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = get_logger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    recorder = Recorder(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
        setup_logging(settings)
        logger.info("Starting HSL Congestion Recorder", environment=settings.environment)
        await recorder.start()

        yield

        logger.info("Shutting down HSL Congestion Recorder")
        await recorder.stop()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Records tram stop observations from the HSL realtime positioning feed",
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url=None,
    )
    app.state.recorder = recorder

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next: Any) -> Any:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        bind_context(request_id=request_id, path=request.url.path)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        clear_context()
        return response

    @app.get("/health", tags=["meta"])
    async def health_check(request: Request) -> dict[str, Any]:
        """Health check endpoint returning recorder status."""
        recorder: Recorder = request.app.state.recorder
        missing_env = settings.missing_required_env()
        db_healthy = await recorder.database.check_connection()
        consumer_status = await recorder.consumer.get_status()
        consumer_healthy = consumer_status["connected"] or not settings.consumer_auto_start

        status = (
            "unhealthy"
            if missing_env
            else "healthy"
            if (db_healthy and consumer_healthy)
            else "degraded"
        )

        issues: list[str] = []
        if missing_env:
            issues.append("Missing required environment variables: " + ", ".join(missing_env))
        if not db_healthy:
            issues.append("Database is not reachable")
        if settings.consumer_auto_start and not consumer_status["connected"]:
            issues.append("HFP consumer is not connected")

        return {
            "service": settings.app_name,
            "status": status,
            "version": settings.app_version,
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": {
                "database": db_healthy,
                "consumer": {
                    "running": consumer_status["running"],
                    "connected": consumer_status["connected"],
                    "inFlight": consumer_status["in_flight"],
                    "received": consumer_status["received"],
                },
                "dispatcher": recorder.dispatcher.outcomes,
            },
            "issues": issues,
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception", exc_info=exc, path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
            },
        )

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "congestion_recorder.main:app",
        host=settings.http_host,
        port=settings.http_port,
        log_config=None,
    )
