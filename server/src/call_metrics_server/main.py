"""Application entrypoints for running the call metrics API."""

from __future__ import annotations

from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import ApplicationError, error_response
from .logging import configure_logging, get_logger
from .records import RecordStore
from .request_context import REQUEST_ID_HEADER, RequestIdMiddleware
from .routes import router as api_router
from .settings import APP_VERSION, Settings, get_settings

logger = get_logger("call_metrics_server")


def create_app(settings: Settings | None = None, store: RecordStore | None = None) -> FastAPI:
    """Build the API with its record store loaded and injected."""

    resolved_settings = settings or get_settings()
    configure_logging(resolved_settings.log_level)

    record_store = store if store is not None else RecordStore.from_path(resolved_settings.data_path)
    logger.info(
        "call_metrics_server_ready",
        records=len(record_store),
        data_path=str(record_store.source) if record_store.source else None,
        hour_bucket_timezone=resolved_settings.hour_bucket_timezone,
    )

    app = FastAPI(
        title="Call Metrics Server",
        description="Call-center performance metrics over conversation records",
        version=APP_VERSION,
    )
    app.state.settings = resolved_settings
    app.state.store = record_store
    app.include_router(api_router)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=resolved_settings.allowed_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(RequestIdMiddleware)

    @app.exception_handler(ApplicationError)
    async def handle_application_error(_: Request, exc: ApplicationError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("metrics_request_failed", error=type(exc).__name__, **exc.details)
        else:
            logger.info("metrics_request_rejected", error=type(exc).__name__, **exc.details)
        return JSONResponse(status_code=exc.status_code, content=error_response(exc))

    @app.get("/", tags=["meta"])
    async def root() -> dict[str, Any]:
        return {
            "message": "Call Metrics Server is running",
            "docs_url": "/docs",
            "health": "/api/healthz",
        }

    return app


def run() -> None:
    """Production oriented entrypoint (host/port configurable via env)."""
    settings = get_settings()
    uvicorn.run(
        "call_metrics_server.main:create_app",
        host=settings.server_host,
        port=settings.server_port,
        factory=True,
    )


def run_dev() -> None:
    """Developer friendly entrypoint with auto-reload enabled."""
    settings = get_settings()
    uvicorn.run(
        "call_metrics_server.main:create_app",
        host=settings.server_host,
        port=settings.server_port,
        reload=True,
        factory=True,
    )


__all__ = ["create_app", "run", "run_dev"]
