"""
PNG Generator
=============

Pillow-based rasterization of label documents into PNG images.
Draws every field of a label onto a grayscale canvas sized from the
requested label geometry and resolution.
"""

from typing import Any, Dict, Optional, Tuple
from abc import ABC, abstractmethod
import io
import math

from PIL import Image, ImageChops, ImageDraw, ImageFont  # type: ignore

from zpl_render.config.logging import get_logger
from zpl_render.config.settings import Settings, get_settings
from zpl_render.models.schemas import (
    ElementType,
    FieldOrientation,
    LabelDocument,
    LabelElement,
    LineColor,
    PNGResult,
    RenderOptions,
)

logger = get_logger(__name__)

WHITE = 255
BLACK = 0

_ROTATIONS = {
    FieldOrientation.NORMAL: None,
    FieldOrientation.ROTATED: Image.Transpose.ROTATE_270,
    FieldOrientation.INVERTED: Image.Transpose.ROTATE_180,
    FieldOrientation.BOTTOM_UP: Image.Transpose.ROTATE_90,
}


class PNGGenerationError(Exception):
    """Exception raised when PNG generation fails."""

    pass


class BaseRasterizer(ABC):
    """Abstract base class for label rasterizers."""

    @abstractmethod
    def render(self, document: LabelDocument, options: RenderOptions) -> PNGResult:
        """
        Rasterize one label document into a PNG.

        Raises:
            PNGGenerationError: If the label cannot be drawn
        """
        pass


class PillowRasterizer(BaseRasterizer):
    """Rasterizer drawing label fields with Pillow."""

    def __init__(
        self,
        max_image_pixels: Optional[int] = None,
        optimize: Optional[bool] = None,
        settings: Optional[Settings] = None,
    ):
        if settings is None and (max_image_pixels is None or optimize is None):
            settings = get_settings()
        self.max_image_pixels = (
            settings.max_image_pixels if max_image_pixels is None else max_image_pixels
        )
        self.optimize = settings.png_optimize if optimize is None else optimize
        self.logger = logger.bind(generator="pillow")

    def canvas_size(self, options: RenderOptions) -> Tuple[int, int]:
        """
        Compute the canvas size in pixels.

        Raises:
            PNGGenerationError: If the geometry is not positive or the canvas
                would exceed the configured pixel limit
        """
        if options.label_width_mm <= 0 or options.label_height_mm <= 0 or options.dpmm <= 0:
            raise PNGGenerationError(
                "label geometry must be positive, got "
                f"{options.label_width_mm:g}x{options.label_height_mm:g}mm at {options.dpmm}dpmm"
            )

        width = int(round(options.label_width_mm * options.dpmm))
        height = int(round(options.label_height_mm * options.dpmm))
        if width * height > self.max_image_pixels:
            raise PNGGenerationError(
                f"label canvas {width}x{height} exceeds the {self.max_image_pixels} pixel limit"
            )
        return width, height

    def render(self, document: LabelDocument, options: RenderOptions) -> PNGResult:
        """
        Rasterize a label document.

        Args:
            document: Parsed label
            options: Label geometry and resolution

        Returns:
            PNGResult containing PNG data and metadata

        Raises:
            PNGGenerationError: If PNG generation fails
        """
        width, height = self.canvas_size(options)

        try:
            image = Image.new("L", (width, height), WHITE)
            fonts: Dict[int, Any] = {}

            for element in document.elements:
                self._draw_element(image, element, fonts)

            output = io.BytesIO()
            image.save(output, format="PNG", optimize=self.optimize)
            png_bytes = output.getvalue()

        except Exception as e:
            error_msg = f"PNG generation failed: {e}"
            self.logger.error("PNG generation error", error=error_msg)
            raise PNGGenerationError(error_msg)

        result = PNGResult(
            png_data=png_bytes,
            width=width,
            height=height,
            file_size=len(png_bytes),
            metadata={"generator": "pillow", "elements": len(document.elements)},
        )

        self.logger.debug(
            "PNG generation completed",
            width=width,
            height=height,
            file_size=result.file_size,
        )
        return result

    def _draw_element(
        self, image: Image.Image, element: LabelElement, fonts: Dict[int, Any]
    ) -> None:
        if element.type == ElementType.TEXT:
            drawn = self._text_mask(element, image.size, fonts)
        else:
            drawn = self._shape_mask(element, image.size)
        if drawn is None:
            return

        mask, (x, y) = drawn
        box = (x, y, x + mask.width, y + mask.height)

        if element.reverse:
            image.paste(ImageChops.invert(image.crop(box)), box, mask)
        else:
            fill = WHITE if element.color == LineColor.WHITE else BLACK
            image.paste(fill, box, mask)

    def _shape_mask(
        self, element: LabelElement, canvas: Tuple[int, int]
    ) -> Optional[Tuple[Image.Image, Tuple[int, int]]]:
        width = element.width or 0
        height = element.height or 0
        if width <= 0 or height <= 0:
            return None

        # The mask only covers the part of the shape inside the canvas
        left, top = max(element.x, 0), max(element.y, 0)
        right = min(element.x + width, canvas[0])
        bottom = min(element.y + height, canvas[1])
        if right <= left or bottom <= top:
            return None

        mask = Image.new("L", (right - left, bottom - top), 0)
        draw = ImageDraw.Draw(mask)
        dx, dy = element.x - left, element.y - top
        bounds = (dx, dy, dx + width - 1, dy + height - 1)
        thickness = element.thickness
        # A line as thick as half the shorter side leaves no hole
        fill = 255 if thickness * 2 >= min(width, height) else None

        if element.type == ElementType.BOX:
            radius = min(width, height) * element.rounding // 16
            if radius:
                draw.rounded_rectangle(bounds, radius=radius, fill=fill, outline=255, width=thickness)
            else:
                draw.rectangle(bounds, fill=fill, outline=255, width=thickness)
        elif element.type in (ElementType.CIRCLE, ElementType.ELLIPSE):
            draw.ellipse(bounds, fill=fill, outline=255, width=thickness)
        else:
            return None
        return mask, (left, top)

    def _text_mask(
        self, element: LabelElement, canvas: Tuple[int, int], fonts: Dict[int, Any]
    ) -> Optional[Tuple[Image.Image, Tuple[int, int]]]:
        if not element.text:
            return None

        font = fonts.get(element.font_height)
        if font is None:
            font = fonts[element.font_height] = ImageFont.load_default(size=element.font_height)

        # Keep the left and top bearing so the origin is the character cell corner
        _, _, right, bottom = font.getbbox(element.text)
        right, bottom = math.ceil(right), math.ceil(bottom)
        if right <= 0 or bottom <= 0:
            return None

        scaled = right
        if element.font_width and element.font_width != element.font_height:
            scaled = max(1, round(right * element.font_width / element.font_height))

        rotation = _ROTATIONS[element.orientation]
        width, height = scaled, bottom
        if rotation in (Image.Transpose.ROTATE_90, Image.Transpose.ROTATE_270):
            width, height = height, width

        x, y = element.x, element.y
        if element.baseline:
            y -= height
        if x >= canvas[0] or y >= canvas[1] or x + width <= 0 or y + height <= 0:
            return None
        if max(right, scaled) * bottom > self.max_image_pixels:
            raise PNGGenerationError(
                f"text field {width}x{height} exceeds the {self.max_image_pixels} pixel limit"
            )

        mask = Image.new("L", (right, bottom), 0)
        ImageDraw.Draw(mask).text((0, 0), element.text, fill=255, font=font)

        if scaled != right:
            mask = mask.resize((scaled, bottom), Image.Resampling.BILINEAR)
        if rotation is not None:
            mask = mask.transpose(rotation)
        return mask, (x, y)


def generate_png(document: LabelDocument, options: RenderOptions) -> PNGResult:
    """
    Rasterize a label document with the default rasterizer.

    Args:
        document: Parsed label
        options: Label geometry and resolution

    Returns:
        PNGResult with generated PNG data
    """
    return PillowRasterizer().render(document, options)
