"""
FastAPI Application
==================

Main FastAPI application for ZPL to PNG conversion.
Builds the route table, CORS policy and render pipeline once at startup.
"""

from contextlib import asynccontextmanager
import uuid
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import Response
import uvicorn

from zpl_render.config.settings import get_settings, Settings
from zpl_render.config.logging import get_logger
from zpl_render.api.errors import register_exception_handlers
from zpl_render.api.routes.health import router as health_router
from zpl_render.api.routes.render import router as render_router
from zpl_render.core.pipeline import RenderPipeline
from zpl_render.core.rendering.png_generator import BaseRasterizer, PillowRasterizer
from zpl_render.core.zpl.parser import BaseLabelParser, ZPLParser

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    logger.info(
        "Starting FastAPI application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        parser=type(app.state.pipeline.parser).__name__,
        rasterizer=type(app.state.pipeline.rasterizer).__name__,
    )
    try:
        yield
    finally:
        logger.info("Shutting down FastAPI application")


async def add_request_id(request: Request, call_next) -> Response:  # type: ignore
    """Add request ID to all requests."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)  # type: ignore
    response.headers["X-Request-ID"] = request_id

    return response


def create_app(
    settings: Optional[Settings] = None,
    parser: Optional[BaseLabelParser] = None,
    rasterizer: Optional[BaseRasterizer] = None,
) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings to build the app from, the global settings by default
        parser: Markup parser capability, ``ZPLParser`` by default
        rasterizer: Rasterizer capability, ``PillowRasterizer`` by default

    Returns:
        FastAPI application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Convert ZPL label markup to PNG images",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.enable_docs else None,
        redoc_url="/redoc" if settings.enable_docs else None,
        openapi_url="/openapi.json" if settings.enable_docs else None,
    )
    app.state.settings = settings
    app.state.pipeline = RenderPipeline(
        parser=parser or ZPLParser(),
        rasterizer=rasterizer or PillowRasterizer(settings=settings),
    )

    # Add middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
        allow_headers=["*"],
    )
    app.middleware("http")(add_request_id)

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(render_router)

    return app


app = create_app()


def run_server() -> None:
    """Run the server with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "zpl_render.api.main:app",
        host=settings.host,
        port=settings.port,
        workers=settings.workers,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run_server()
