"""
Render Pipeline
===============

The per-request path from raw path segments and body to PNG bytes:
geometry validation, payload acquisition, parsing and rasterization.

Every step either returns its value or raises a ``RenderPipelineError``
subclass. Each failure kind carries the HTTP status and the client-facing
message the API layer answers with.
"""

from typing import List, Optional, Tuple
import re

from fastapi import Request
from fastapi.concurrency import run_in_threadpool
from starlette.requests import ClientDisconnect

from zpl_render.config.logging import get_logger
from zpl_render.core.rendering.png_generator import BaseRasterizer
from zpl_render.core.zpl.parser import BaseLabelParser
from zpl_render.models.schemas import LabelDocument, PNGResult, RenderOptions, RenderRequest

logger = get_logger(__name__)

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
# Path segments are signed 64-bit integers
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_INT64_DIGITS = len(str(_INT64_MAX))


class RenderPipelineError(Exception):
    """Base class for every failure the render pipeline reports to clients."""

    status_code = 500
    default_message = "Render pipeline failed"

    def __init__(self, message: Optional[str] = None, cause: Optional[BaseException] = None):
        self.message = message or self.default_message
        self.cause = cause
        super().__init__(self.message)


class InvalidParameterError(RenderPipelineError):
    """A path segment is not an integer."""

    status_code = 400

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Invalid {name} parameter")


class BodyReadError(RenderPipelineError):
    """The request body could not be read from the transport."""

    status_code = 400
    default_message = "Failed to read request body"


class EmptyPayloadError(RenderPipelineError):
    """The request body is empty."""

    status_code = 400
    default_message = "Empty ZPL data"


class NoLabelsFoundError(RenderPipelineError):
    """The markup parsed but described no labels."""

    status_code = 400
    default_message = "No labels found in ZPL data"


class ParseFailureError(RenderPipelineError):
    """The parser rejected the markup."""

    status_code = 500

    def __init__(self, cause: BaseException):
        super().__init__(f"Failed to parse ZPL: {cause}", cause=cause)


class RenderFailureError(RenderPipelineError):
    """The rasterizer could not draw the label."""

    status_code = 500

    def __init__(self, cause: BaseException):
        super().__init__(f"Failed to render ZPL to PNG: {cause}", cause=cause)


def parse_integer(name: str, token: str) -> int:
    """Parse a base-10 integer path segment, raising ``InvalidParameterError``."""
    if not _INTEGER_RE.fullmatch(token):
        raise InvalidParameterError(name)
    digits = token.lstrip("+-").lstrip("0") or "0"
    if len(digits) > _INT64_DIGITS:
        raise InvalidParameterError(name)

    value = -int(digits) if token.startswith("-") else int(digits)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise InvalidParameterError(name)
    return value


def validate_geometry(
    width: str, height: str, dpmm: str, strict: bool = False
) -> Tuple[int, int, int]:
    """
    Validate the three geometry path segments.

    Args:
        width: Label width in millimeters
        height: Label height in millimeters
        dpmm: Resolution in dots per millimeter
        strict: Also reject zero and negative values

    Returns:
        Tuple of (width, height, dpmm)

    Raises:
        InvalidParameterError: Naming the first offending segment
    """
    values = (
        ("width", parse_integer("width", width)),
        ("height", parse_integer("height", height)),
        ("dpmm", parse_integer("dpmm", dpmm)),
    )
    if strict:
        for name, value in values:
            if value <= 0:
                raise InvalidParameterError(name)
    return values[0][1], values[1][1], values[2][1]


async def read_payload(request: Request) -> bytes:
    """
    Read the whole request body.

    Raises:
        BodyReadError: If the client went away mid-read
        EmptyPayloadError: If the body is empty
    """
    try:
        body = await request.body()
    except ClientDisconnect as e:
        raise BodyReadError(cause=e)

    if not body:
        raise EmptyPayloadError()
    return body


class RenderPipeline:
    """Parses markup and rasterizes its first label."""

    def __init__(self, parser: BaseLabelParser, rasterizer: BaseRasterizer) -> None:
        self.parser = parser
        self.rasterizer = rasterizer

    async def parse_labels(self, data: bytes) -> List[LabelDocument]:
        """
        Parse raw markup, requiring at least one label.

        Raises:
            ParseFailureError: If the parser fails
            NoLabelsFoundError: If parsing yields no labels
        """
        try:
            documents = await run_in_threadpool(self.parser.parse, data)
        except Exception as e:
            raise ParseFailureError(e)

        if not documents:
            raise NoLabelsFoundError()
        return documents

    async def render_label(self, document: LabelDocument, options: RenderOptions) -> PNGResult:
        """
        Rasterize a single label.

        Raises:
            RenderFailureError: If the rasterizer fails
        """
        try:
            return await run_in_threadpool(self.rasterizer.render, document, options)
        except Exception as e:
            raise RenderFailureError(e)

    async def run(self, request: RenderRequest) -> PNGResult:
        """
        Render the first label described by the request's markup.

        Args:
            request: Validated geometry and non-empty markup

        Returns:
            PNGResult for the first label
        """
        documents = await self.parse_labels(request.raw_markup)
        if len(documents) > 1:
            logger.debug("Ignoring additional labels", ignored=len(documents) - 1)

        options = RenderOptions.from_request(request)
        result = await self.render_label(documents[0], options)

        logger.info(
            "Successfully rendered PNG",
            file_size=result.file_size,
            width=result.width,
            height=result.height,
        )
        return result
