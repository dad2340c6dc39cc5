"""
Render Routes
=============

FastAPI route converting a ZPL request body into a PNG response.
"""

from fastapi import APIRouter, Depends, Request, Response

from zpl_render.config.logging import get_logger
from zpl_render.config.settings import Settings
from zpl_render.core.pipeline import RenderPipeline, read_payload, validate_geometry
from zpl_render.models.schemas import ErrorResponse, PNGResult, RenderRequest

logger = get_logger(__name__)

router = APIRouter(tags=["Rendering"])

PNG_MEDIA_TYPE = "image/png"
NO_CACHE = "no-cache, no-store, must-revalidate"


def get_pipeline(request: Request) -> RenderPipeline:
    """Dependency returning the pipeline built at startup."""
    return request.app.state.pipeline


def get_app_settings(request: Request) -> Settings:
    """Dependency returning the settings the app was built with."""
    return request.app.state.settings


def build_png_response(result: PNGResult) -> Response:
    """Wrap rendered PNG bytes in an uncacheable 200 response."""
    return Response(
        content=result.png_data,
        status_code=200,
        media_type=PNG_MEDIA_TYPE,
        headers={
            "Content-Length": str(len(result.png_data)),
            "Cache-Control": NO_CACHE,
        },
    )


@router.post(
    "/render/{width}/{height}/{dpmm}",
    response_class=Response,
    responses={
        200: {"content": {PNG_MEDIA_TYPE: {}}, "description": "Rendered label"},
        400: {"model": ErrorResponse, "description": "Invalid geometry, empty body or no labels"},
        500: {"model": ErrorResponse, "description": "Parse or render failure"},
    },
)
async def render_label(
    width: str,
    height: str,
    dpmm: str,
    request: Request,
    pipeline: RenderPipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_app_settings),
) -> Response:
    """
    Render the first label of the ZPL request body as PNG.

    Args:
        width: Label width in millimeters
        height: Label height in millimeters
        dpmm: Resolution in dots per millimeter

    Returns:
        PNG image response
    """
    width_mm, height_mm, dots_per_mm = validate_geometry(
        width, height, dpmm, strict=settings.strict_geometry
    )
    raw_markup = await read_payload(request)

    logger.info(
        "Render requested",
        width_mm=width_mm,
        height_mm=height_mm,
        dpmm=dots_per_mm,
        content_length=len(raw_markup),
        request_id=getattr(request.state, "request_id", None),
    )

    render_request = RenderRequest(
        width_mm=width_mm, height_mm=height_mm, dpmm=dots_per_mm, raw_markup=raw_markup
    )
    result = await pipeline.run(render_request)
    return build_png_response(result)
