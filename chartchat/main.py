"""FastAPI application instance and startup hooks."""
from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from chartchat.core import get_logger, get_settings
from chartchat.core.log import init_logging, shutdown_logging
from chartchat.errors import ChartChatError
from chartchat.routers import (
    chat_router,
    client_logs_router,
    embed_router,
    metadata_router,
    system_router,
)
from chartchat.schemas.common import error_response

LOGGER = get_logger(__name__)
TEMPLATES = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = get_settings()
    init_logging(level=settings.log_level)

    app = FastAPI(title="Chart Chat", version="0.1.0")
    app.include_router(chat_router)
    app.include_router(metadata_router)
    app.include_router(embed_router)
    app.include_router(system_router)
    app.include_router(client_logs_router)

    @app.exception_handler(ChartChatError)
    async def chartchat_error_handler(request: Request, exc: ChartChatError):
        LOGGER.error(f"{request.method} {request.url.path} failed: {str(exc)}")
        return error_response(500, str(exc), exc.detail)

    @app.get("/", response_class=HTMLResponse, include_in_schema=False)
    async def index(request: Request):
        return TEMPLATES.TemplateResponse(
            request,
            "index.html",
            {"report_id": settings.powerbi.report_id},
        )

    @app.on_event("shutdown")
    def stop_logging() -> None:
        shutdown_logging()

    LOGGER.info("FastAPI application initialised")
    return app


app = create_app()
