"""
Error Mapping
=============

Maps render pipeline failures and framework HTTP errors to status codes and
``{"error": ...}`` bodies, and registers the matching exception handlers.
"""

from typing import Tuple

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from zpl_render.config.logging import get_logger
from zpl_render.core.pipeline import RenderPipelineError
from zpl_render.models.schemas import ErrorResponse

logger = get_logger(__name__)


def map_pipeline_error(exc: RenderPipelineError) -> Tuple[int, ErrorResponse]:
    """
    Classify a pipeline failure.

    Args:
        exc: Failure raised by any pipeline step

    Returns:
        Tuple of (HTTP status, error body)
    """
    return exc.status_code, ErrorResponse(error=exc.message or exc.default_message)


async def pipeline_exception_handler(request: Request, exc: RenderPipelineError) -> JSONResponse:
    """Answer a pipeline failure with its mapped status and error body."""
    status_code, error_response = map_pipeline_error(exc)
    request_id = getattr(request.state, "request_id", None)

    if status_code >= 500:
        logger.error(
            "Render request failed",
            status_code=status_code,
            error=error_response.error,
            cause=repr(exc.cause),
            request_id=request_id,
            exc_info=exc.cause or exc,
        )
    else:
        logger.warning(
            "Render request rejected",
            status_code=status_code,
            error=error_response.error,
            request_id=request_id,
        )

    return JSONResponse(status_code=status_code, content=error_response.model_dump(mode="json"))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Shape framework HTTP errors (404, 405, ...) like pipeline errors."""
    error_response = ErrorResponse(error=str(exc.detail) or "HTTP error")

    logger.info(
        "HTTP exception",
        status_code=exc.status_code,
        detail=exc.detail,
        request_id=getattr(request.state, "request_id", None),
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(mode="json"),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """General exception handler for unexpected errors."""
    request_id = getattr(request.state, "request_id", None)
    logger.error(
        "Unhandled exception",
        exception=str(exc),
        request_id=request_id,
        exc_info=exc,
    )

    error_response = ErrorResponse(error="Internal server error")
    # Served outside the request-id middleware, so the header is set here
    headers = {"X-Request-ID": request_id} if request_id else None
    return JSONResponse(
        status_code=500, content=error_response.model_dump(mode="json"), headers=headers
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error handlers on an application."""
    app.add_exception_handler(RenderPipelineError, pipeline_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, general_exception_handler)
